import logging
import shutil
from importlib import resources
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from .digraph import EXPANDER, INITIATOR, PORT, TARGET, VERTEX_KINDS
from .errors import AssetError

logger = logging.getLogger(__name__)

ICON_SIZE = 120

ICON_COLORS = {
    INITIATOR: "#1f6feb",
    PORT: "#2da44e",
    EXPANDER: "#bf8700",
    TARGET: "#8250df",
}

_FONT_CANDIDATES = [
    "DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "Arial Bold.ttf",
    "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
    "C:/Windows/Fonts/arialbd.ttf",
]


def load_html_template() -> str:
    with resources.files(__package__).joinpath("data/sastopo2svg.html").open("r", encoding="utf-8") as fh:
        return fh.read()


def load_script() -> str:
    with resources.files(__package__).joinpath("data/sastopo2svg.js").open("r", encoding="utf-8") as fh:
        return fh.read()


def render_icon(kind: str, size: int = ICON_SIZE) -> Image.Image:
    """Draw the default icon for a vertex kind: a colored tile with its initial."""
    if kind not in ICON_COLORS:
        raise AssetError(f'no icon for vertex kind "{kind}"')

    img = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    inset = max(1, size // 20)
    draw.rounded_rectangle(
        (inset, inset, size - inset - 1, size - inset - 1),
        radius=size // 6,
        fill=ICON_COLORS[kind],
        outline="#24292f",
        width=max(1, size // 40),
    )

    label = kind[0].upper()
    font = _load_font(size // 2)
    left, top, right, bottom = draw.textbbox((0, 0), label, font=font)
    x = (size - (right - left)) / 2 - left
    y = (size - (bottom - top)) / 2 - top
    draw.text((x, y), label, font=font, fill="#ffffff")
    return img


def install_assets(outdir: Path, asset_dir: Optional[Path] = None) -> Path:
    """Populate ``outdir/assets/icons`` and return the icon directory.

    With ``asset_dir`` the directory is copied over (overwriting existing
    files); otherwise the default icons are rendered.
    """
    target = outdir / "assets"
    icons = target / "icons"
    if asset_dir is not None:
        missing = [kind for kind in VERTEX_KINDS if not (asset_dir / "icons" / f"{kind}.png").is_file()]
        if missing:
            raise AssetError(
                f"asset directory {asset_dir} lacks icons for: {', '.join(missing)}"
            )
        logger.debug("Copying image assets: %s to %s", asset_dir, target)
        shutil.copytree(asset_dir, target, dirs_exist_ok=True)
        return icons

    icons.mkdir(parents=True, exist_ok=True)
    for kind in VERTEX_KINDS:
        path = icons / f"{kind}.png"
        logger.debug("Rendering %s icon to %s", kind, path)
        render_icon(kind).save(path, "PNG")
    return icons


def _load_font(font_size: int) -> ImageFont.ImageFont:
    for candidate in _FONT_CANDIDATES:
        try:
            return ImageFont.truetype(candidate, font_size)
        except OSError:
            continue
    try:
        return ImageFont.load_default(size=font_size)
    except TypeError:
        # Older Pillow versions don't support the size parameter.
        return ImageFont.load_default()
