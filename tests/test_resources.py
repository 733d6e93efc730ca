from __future__ import annotations

import sys
import tempfile
import unittest
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from PIL import Image

from sastopo2svg.errors import AssetError
from sastopo2svg.resources import install_assets, load_html_template, load_script, render_icon

KINDS = ("initiator", "port", "expander", "target")


class PackagedDataTests(unittest.TestCase):
    def test_html_template_leaves_diagram_open(self) -> None:
        html = load_html_template()
        self.assertIn("<html>", html)
        self.assertIn('id="vertexinfo"', html)
        self.assertNotIn("</body>", html)

    def test_script_defines_click_handler(self) -> None:
        self.assertIn("function showInfo(evt)", load_script())


class IconTests(unittest.TestCase):
    def test_render_icon(self) -> None:
        img = render_icon("expander")
        self.assertEqual(img.size, (120, 120))
        self.assertEqual(img.mode, "RGBA")
        # corners stay transparent, the tile center is painted
        self.assertEqual(img.getpixel((0, 0))[3], 0)
        self.assertEqual(img.getpixel((10, 60))[3], 255)

    def test_render_icon_unknown_kind(self) -> None:
        with self.assertRaises(AssetError):
            render_icon("switch")

    def test_install_renders_default_icons(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            icons = install_assets(Path(td))
            self.assertEqual(icons, Path(td) / "assets" / "icons")
            for kind in KINDS:
                with Image.open(icons / f"{kind}.png") as img:
                    self.assertEqual(img.size, (120, 120))

    def test_install_copies_asset_dir(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            src = Path(td) / "custom"
            (src / "icons").mkdir(parents=True)
            for kind in KINDS:
                Image.new("RGB", (16, 16), "red").save(src / "icons" / f"{kind}.png")
            (src / "README").write_text("custom icons")

            outdir = Path(td) / "out"
            outdir.mkdir()
            (outdir / "assets" / "icons").mkdir(parents=True)
            (outdir / "assets" / "icons" / "port.png").write_bytes(b"stale")

            icons = install_assets(outdir, src)
            self.assertTrue((outdir / "assets" / "README").is_file())
            with Image.open(icons / "port.png") as img:
                self.assertEqual(img.size, (16, 16))

    def test_install_rejects_incomplete_asset_dir(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            src = Path(td) / "custom"
            (src / "icons").mkdir(parents=True)
            Image.new("RGB", (16, 16)).save(src / "icons" / "port.png")
            with self.assertRaises(AssetError) as ctx:
                install_assets(Path(td) / "out", src)
            self.assertIn("initiator", str(ctx.exception))
            self.assertFalse((Path(td) / "out").exists())


if __name__ == "__main__":
    unittest.main()
