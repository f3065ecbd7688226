"""Identifiers and printable codes attached to a product at creation time."""
import base64
import io
import re
import secrets
import time

import qrcode
from barcode import Code128
from barcode.writer import ImageWriter

from pos_backend.core.exceptions import InvalidArgument

BARCODE_LENGTH = 13


def generate_sku(name: str) -> str:
    """``"Cola Zero 33cl"`` -> ``"COLA-ZERO-33CL-1718031234567"``"""
    if not name or not name.strip():
        raise InvalidArgument("Product name is required for SKU generation.")
    stem = re.sub(r"\s+", "-", name.strip().upper())
    return f"{stem}-{int(time.time() * 1000)}"


def generate_product_code() -> str:
    return str(secrets.randbelow(900000) + 100000)


def generate_barcode_value() -> str:
    return "".join(secrets.choice("0123456789") for _ in range(BARCODE_LENGTH))


def _png_data_url(raw: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(raw).decode("ascii")


def render_qr_code(data: str) -> str:
    buffer = io.BytesIO()
    qrcode.make(data).save(buffer)
    return _png_data_url(buffer.getvalue())


def render_barcode(data: str) -> str:
    buffer = io.BytesIO()
    Code128(data, writer=ImageWriter()).write(
        buffer,
        options={"module_height": 10.0, "write_text": True},
    )
    return _png_data_url(buffer.getvalue())
