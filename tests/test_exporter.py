import sys
import tempfile
import unittest
from pathlib import Path

import numpy as np

# Ensure local package import without install
SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from spm_export.config import ColorMap, ImageFormat, build_config  # noqa: E402
from spm_export.data import DataContainer, DataField  # noqa: E402
from spm_export.exporter import channel_base_path, export_channel, sanitize_title  # noqa: E402
from spm_export.metadata import serialize_to_text, serialize_value, write_metadata  # noqa: E402
from spm_export.session import Session  # noqa: E402


def make_container(meta=None):
    y, x = np.mgrid[0:16, 0:16].astype(float)
    container = DataContainer(source=Path("/data/scan.ibw"))
    for cid, title in enumerate(["Z Height", "Phase", "Height"]):
        container.channels[cid] = DataField(x + y * cid, xreal=1e-6, yreal=1e-6, si_unit_xy="m")
        container.titles[cid] = title
    container.meta.update(meta or {})
    return container


def make_session(container):
    session = Session()
    session.register(container)
    return session


class NamingTestCase(unittest.TestCase):
    def test_sanitize_title(self):
        self.assertEqual(sanitize_title("Z Height"), "Z_Height")
        self.assertEqual(sanitize_title("Height"), "Height")

    def test_base_path(self):
        base = channel_base_path("/out", "/data/scan.ibw", 2, "Height")
        self.assertEqual(base, Path("/out/scan.ibw-2-Height"))


class ExportChannelTestCase(unittest.TestCase):
    def test_png_export_naming(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config = build_config(output_dir=tmpdir, image_format="png", filters="pc", colormap="full")
            ctx = export_channel(config, make_session(make_container()), 2)
            self.assertEqual(ctx.image_path, Path(tmpdir) / "scan.ibw-2-Height.png")
            self.assertEqual(ctx.metadata_path, Path(tmpdir) / "scan.ibw-2-Height.txt")
            self.assertTrue(ctx.saved)
            self.assertTrue(ctx.image_path.exists())
            self.assertFalse(ctx.metadata_path.exists())

    def test_jpeg_default_and_sanitized_title(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            out = Path(tmpdir) / "nested"
            config = build_config(output_dir=out, filters="")
            ctx = export_channel(config, make_session(make_container()), 0)
            self.assertEqual(ctx.title, "Z_Height")
            self.assertEqual(ctx.image_path, out / "scan.ibw-0-Z_Height.jpg")
            self.assertTrue(ctx.image_path.exists())

    def test_trace_and_scalebar(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config = build_config(output_dir=tmpdir, filters="pc;xyz;poly:2", gradient="Gray", colormap=ColorMap.AUTO)
            ctx = export_channel(config, make_session(make_container()), 1)
            self.assertEqual(
                ctx.trace,
                ["Color gradient: 'Gray'", "Color Range: Auto", "Plane level", "Polynomial level: (2,2)"],
            )
            self.assertFalse(ctx.filters_ok)
            self.assertEqual(ctx.scalebar_text, "400 nm")
            self.assertAlmostEqual(ctx.scalebar_relwidth, 0.4, places=9)
            lo, hi = ctx.color_range
            self.assertLessEqual(lo, hi)

    def test_metadata_written_after_image(self):
        meta = {2: {"Date": "2012-05-30", "Scan rate": 1.5, "Lines": 256, "Retrace": False}}
        with tempfile.TemporaryDirectory() as tmpdir:
            config = build_config(output_dir=tmpdir, image_format=ImageFormat.PNG, filters="pc", metadata=True)
            ctx = export_channel(config, make_session(make_container(meta)), 2)
            self.assertTrue(ctx.metadata_written)
            lines = ctx.metadata_path.read_text(encoding="utf-8").split("\n")
            self.assertTrue(lines[0].startswith('"Info:Metadata" string "Dumped by spm-export v'))
            self.assertEqual(lines[1], '"Info:Sourcefile" string "%s"' % Path("/data/scan.ibw"))
            self.assertEqual(lines[2], '"Date" string "2012-05-30"')
            self.assertEqual(lines[3], '"Scan rate" double 1.5')
            self.assertEqual(lines[4], '"Lines" int32 256')
            self.assertEqual(lines[5], '"Retrace" boolean False')
            self.assertEqual(
                lines[6],
                '"Info:Processing" string "Color gradient: \'ReiGreen\', Color Range: Auto, Plane level"',
            )
            self.assertEqual(lines[7], "")
            self.assertGreaterEqual(ctx.metadata_path.stat().st_mtime_ns, ctx.image_path.stat().st_mtime_ns)

    def test_unwritable_metadata_keeps_image(self):
        meta = {2: {"Date": "2012-05-30"}}
        with tempfile.TemporaryDirectory() as tmpdir:
            # a directory where the .txt file should go makes open() fail
            (Path(tmpdir) / "scan.ibw-2-Height.txt").mkdir()
            config = build_config(output_dir=tmpdir, image_format="png", filters="pc", metadata=True)
            with self.assertLogs("spm_export", level="WARNING") as cm:
                ctx = export_channel(config, make_session(make_container(meta)), 2)
            self.assertTrue(ctx.saved)
            self.assertTrue(ctx.image_path.exists())
            self.assertFalse(ctx.metadata_written)
            self.assertTrue(any("not saved" in line for line in cm.output))

    def test_infinite_width_skips_scalebar(self):
        container = make_container()
        container.channels[1] = DataField(np.ones((8, 8)), xreal=float("inf"), yreal=1e-6, si_unit_xy="m")
        with tempfile.TemporaryDirectory() as tmpdir:
            config = build_config(output_dir=tmpdir, image_format="png", filters="", colormap="full")
            with self.assertLogs("spm_export", level="WARNING") as cm:
                ctx = export_channel(config, make_session(container), 1)
            self.assertTrue(ctx.saved)
            self.assertEqual(ctx.scalebar_text, "")
            self.assertTrue(any("no scale bar" in line for line in cm.output))


class MetadataTestCase(unittest.TestCase):
    def test_fallback_to_channel_zero(self):
        container = make_container({0: {"Owner": "lab"}})
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "m.txt"
            with self.assertLogs("spm_export.metadata", level="INFO") as cm:
                ok = write_metadata(path, container, 2, ["Plane level"])
            self.assertTrue(ok)
            self.assertIn("fall back on channel 0", cm.output[0])
            self.assertIn('"Owner" string "lab"', path.read_text(encoding="utf-8"))

    def test_no_metadata_at_all(self):
        container = make_container()
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "m.txt"
            with self.assertLogs("spm_export.metadata", level="WARNING"):
                ok = write_metadata(path, container, 1, [])
            self.assertFalse(ok)
            self.assertFalse(path.exists())

    def test_value_serialization(self):
        self.assertEqual(serialize_value(True), "boolean True")
        self.assertEqual(serialize_value(np.int64(7)), "int32 7")
        self.assertEqual(serialize_value(2 ** 40), "int64 %d" % 2 ** 40)
        self.assertEqual(serialize_value(np.float32(0.5)), "double 0.5")
        self.assertEqual(serialize_value('say "hi"'), 'string "say \\"hi\\""')
        self.assertEqual(serialize_to_text({"a b": 1}), ['"a b" int32 1'])


if __name__ == "__main__":
    unittest.main()
