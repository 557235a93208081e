import sys
import unittest
from pathlib import Path

# Ensure local package import without install
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from scripts import check_env  # type: ignore # noqa: E402


class CheckEnvTestCase(unittest.TestCase):
    def test_version_compare(self):
        self.assertTrue(check_env._version_ok("1.26.4", "1.22.0"))
        self.assertTrue(check_env._version_ok("6.0.1", "6.0.0"))
        self.assertFalse(check_env._version_ok("3.5.2", "3.6.0"))
        self.assertTrue(check_env._version_ok("10.0.0rc1", "9.0.0"))

    def test_required_packages_report(self):
        results = check_env.check_packages(check_env.REQUIRED_PACKAGES, required=True)
        names = [r["component"] for r in results]
        self.assertIn("python-package:numpy", names)
        numpy_entry = results[names.index("python-package:numpy")]
        self.assertTrue(numpy_entry["ok"])

    def test_missing_optional_is_warning(self):
        results = check_env.check_packages([{"dist": "no-such-dist", "import": "no_such_module_xyz"}], required=False)
        self.assertFalse(results[0]["ok"])
        self.assertIn("[WARN", check_env.format_human(results))


if __name__ == "__main__":
    unittest.main()
