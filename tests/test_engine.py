import sys
import unittest
from pathlib import Path

import numpy as np

# Ensure local package import without install
SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from spm_export.data import DataField  # noqa: E402
from spm_export.engine import NumpyEngine, box_mean  # noqa: E402
from spm_export.errors import EngineError  # noqa: E402


def tilted(xres=16, yres=12):
    y, x = np.mgrid[0:yres, 0:xres].astype(float)
    return DataField(2.0 * x + 3.0 * y + 5.0, xreal=1e-6, yreal=1e-6)


class EngineTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = NumpyEngine()

    def test_level_removes_plane(self):
        f = tilted()
        self.engine.run("level", f, {})
        np.testing.assert_allclose(f.data, 0.0, atol=1e-9)

    def test_polylevel_removes_quadratic(self):
        y, x = np.mgrid[0:10, 0:20].astype(float)
        f = DataField(0.5 * x ** 2 - 0.2 * y ** 2 + x * y + 1.0)
        settings = {"/module/polylevel/col_degree": 2, "/module/polylevel/row_degree": 2}
        self.engine.run("polylevel", f, settings)
        np.testing.assert_allclose(f.data, 0.0, atol=1e-8)

    def test_median_line_correct_equalises_rows(self):
        base = np.tile(np.arange(8.0), (6, 1))
        offsets = np.array([0.0, 5.0, -3.0, 10.0, 1.0, 2.0])[:, np.newaxis]
        f = DataField(base + offsets)
        self.engine.run("line_correct_median", f, {})
        medians = np.median(f.data, axis=1)
        np.testing.assert_allclose(medians, medians[0])

    def test_scars_remove_fixes_bright_row_segment(self):
        z = np.zeros((8, 32))
        z[4, :] = 10.0
        f = DataField(z)
        self.engine.run("scars_remove", f, {})
        np.testing.assert_allclose(f.data, 0.0)

    def test_scars_remove_leaves_flat_field(self):
        f = DataField(np.ones((5, 5)))
        self.engine.run("scars_remove", f, {})
        np.testing.assert_allclose(f.data, 1.0)

    def test_mean_filter_matches_brute_force(self):
        rng = np.random.default_rng(0)
        z = rng.normal(size=(7, 9))
        size = 3
        padded = np.pad(z, 1, mode="edge")
        expected = np.array(
            [[padded[r:r + size, c:c + size].mean() for c in range(9)] for r in range(7)]
        )
        np.testing.assert_allclose(box_mean(z, size), expected)

    def test_mean_filter_keeps_shape(self):
        f = tilted()
        self.engine.mean_filter(f, 4)
        self.assertEqual(f.data.shape, (12, 16))
        with self.assertRaises(EngineError):
            self.engine.mean_filter(f, 0)

    def test_simple_modules(self):
        f = DataField(np.array([[1.0, 2.0], [3.0, 4.0]]))
        self.engine.run("fix_zero", f, {})
        self.assertEqual(f.data.min(), 0.0)
        self.engine.run("flip_horizontally", f, {})
        np.testing.assert_array_equal(f.data, [[1.0, 0.0], [3.0, 2.0]])
        self.engine.run("flip_vertically", f, {})
        np.testing.assert_array_equal(f.data, [[3.0, 2.0], [1.0, 0.0]])
        self.engine.run("invert_value", f, {})
        np.testing.assert_array_equal(f.data, [[0.0, 1.0], [2.0, 3.0]])
        self.engine.run("zero_mean", f, {})
        self.assertAlmostEqual(f.data.mean(), 0.0)

    def test_unknown_module(self):
        self.assertFalse(self.engine.exists("no_such_module"))
        with self.assertRaises(EngineError):
            self.engine.run("no_such_module", tilted(), {})

    def test_register_module(self):
        def double(field, settings):
            field.data = field.data * 2

        self.engine.register("double", double)
        f = DataField(np.ones((2, 2)))
        self.engine.run("double", f, {})
        np.testing.assert_array_equal(f.data, 2.0)


if __name__ == "__main__":
    unittest.main()
