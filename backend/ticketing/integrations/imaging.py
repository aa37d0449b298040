"""
电子票图片处理

- render_code: 用 qrcode 生成二维码 PNG
- compose: 用 Pillow 把二维码贴到底图上并输出单张 PNG

两个函数都是纯函数：输入字节，输出字节，不读写文件。
"""
from __future__ import annotations

import io

import qrcode
from PIL import Image
from qrcode.constants import ERROR_CORRECT_M


def render_code(payload: str, *, size: int = 250, margin: int = 1) -> bytes:
    """
    生成二维码图片

    Args:
        payload: 二维码内容（票号）
        size: 输出图片边长（像素）
        margin: 二维码四周留白（模块数）

    Returns:
        PNG 字节
    """
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, border=margin)
    qr.add_data(payload)
    qr.make(fit=True)

    raw = io.BytesIO()
    qr.make_image(fill_color="black", back_color="white").save(raw)
    raw.seek(0)

    with Image.open(raw) as img:
        # 最近邻缩放，保持二维码模块边缘清晰
        code = img.convert("RGB").resize((size, size), Image.Resampling.NEAREST)

    out = io.BytesIO()
    code.save(out, format="PNG")
    return out.getvalue()


def compose(base_image: bytes, overlay_image: bytes, position: tuple[int, int]) -> bytes:
    """
    把 overlay 贴到 base 上

    Args:
        base_image: 底图字节
        overlay_image: 叠加图字节（二维码）
        position: (left, top) 偏移

    Returns:
        合成后的 PNG 字节

    Raises:
        PIL.UnidentifiedImageError: 图片无法解码
        ValueError: 叠加图超出底图范围
    """
    left, top = position
    with Image.open(io.BytesIO(base_image)) as base_src, Image.open(io.BytesIO(overlay_image)) as overlay_src:
        base = base_src.convert("RGBA")
        overlay = overlay_src.convert("RGBA")

    if left < 0 or top < 0 or left + overlay.width > base.width or top + overlay.height > base.height:
        raise ValueError(
            f"overlay {overlay.width}x{overlay.height} at ({left}, {top}) "
            f"does not fit base {base.width}x{base.height}"
        )

    base.alpha_composite(overlay, dest=(left, top))

    out = io.BytesIO()
    base.save(out, format="PNG")
    return out.getvalue()
