"""
Table links encoded in the QR codes printed for each table.
"""

from urllib.parse import quote

from qrmenu.services.cart import normalize_table_id


def build_table_url(base_url: str, table_id: str) -> str:
    """Public menu URL for ``table_id`` under ``base_url``."""
    table_id = normalize_table_id(table_id)
    if not base_url.endswith("/"):
        base_url += "/"
    return f"{base_url}{quote(table_id, safe='')}"


def qr_download_filename(table_id: str) -> str:
    return f"table-{normalize_table_id(table_id)}-qrcode.png"
