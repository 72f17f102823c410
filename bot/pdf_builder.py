from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import List, Sequence

from PIL import Image, ImageOps


log = logging.getLogger("kirobot.pdf")

# At 72 dpi one pixel is one PDF point, so each page is exactly its image size.
PDF_RESOLUTION = 72.0


@dataclass
class PageLayout:
    target_width: int = 800
    max_page_height: int = 2400
    jpeg_quality: int = 85


def normalize_image(data: bytes, layout: PageLayout) -> List[Image.Image]:
    """Decode, re-orient and rescale one downloaded page; return its output strips.

    The image is scaled to ``target_width`` keeping its aspect ratio (never
    upscaled), re-encoded as JPEG, and cut into horizontal strips no taller
    than ``max_page_height``.
    """
    with Image.open(io.BytesIO(data)) as src:
        img = ImageOps.exif_transpose(src)
        img = img.convert("RGB")

    if img.width > layout.target_width:
        height = max(1, round(img.height * layout.target_width / img.width))
        img = img.resize((layout.target_width, height), Image.LANCZOS)

    buf = io.BytesIO()
    img.save(buf, "JPEG", quality=layout.jpeg_quality, optimize=True)
    buf.seek(0)
    with Image.open(buf) as encoded:
        img = encoded.convert("RGB")

    if img.height <= layout.max_page_height:
        return [img]

    strips = []
    for top in range(0, img.height, layout.max_page_height):
        bottom = min(top + layout.max_page_height, img.height)
        strips.append(img.crop((0, top, img.width, bottom)))
    return strips


def build_pdf(pages: Sequence[Image.Image]) -> bytes:
    """Assemble pages into one PDF; page size equals each image's pixel size."""
    if not pages:
        raise ValueError("no pages to assemble")
    first, rest = pages[0], list(pages[1:])
    out = io.BytesIO()
    first.save(out, "PDF", resolution=PDF_RESOLUTION, save_all=True, append_images=rest)
    log.info("pdf assembled", extra={"pages": len(pages), "bytes": out.tell()})
    return out.getvalue()
