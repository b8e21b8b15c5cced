from __future__ import annotations

FOLDER_MIME: str = "application/vnd.google-apps.folder"
SHORTCUT_MIME: str = "application/vnd.google-apps.shortcut"
PDF_MIME: str = "application/pdf"


def is_folder(mime_type: str) -> bool:
    return mime_type == FOLDER_MIME


def choose_export_mime(export_links: dict[str, str]) -> tuple[str, str]:
    """
    Pick the export format for a native Google document.

    Drive only lists `exportLinks` for files it cannot serve as-is. PDF is
    taken when offered, otherwise the first format in the API's order.

    Returns:
        (mime_type, export_link)
    """
    if not export_links:
        raise ValueError("export_links must not be empty")
    if PDF_MIME in export_links:
        return PDF_MIME, export_links[PDF_MIME]
    mime_type, link = next(iter(export_links.items()))
    return mime_type, link
