"""Field definitions for Google Drive API responses."""

from __future__ import annotations

from drivebrowser.util.mime import SHORTCUT_MIME

NODE_FIELDS: str = "id,name,mimeType,size,modifiedTime,parents"

LIST_FIELDS: str = f"nextPageToken,files({NODE_FIELDS})"

TRANSFER_FIELDS: str = "copyRequiresWriterPermission,exportLinks"

THUMBNAIL_FIELDS: str = "thumbnailLink"

MD5_FIELDS: str = "md5Checksum"

WEB_VIEW_FIELDS: str = "webViewLink"

PERSON_FIELDS: str = "names"

ACTIVITY_FILTER: str = "detail.action_detail_case:(CREATE EDIT RENAME MOVE DELETE RESTORE)"

ROOT_LISTING_QUERY: str = (
    "('root' in parents or sharedWithMe = true) and trashed = false "
    f"and mimeType != '{SHORTCUT_MIME}'"
)


def children_query(folder_id: str) -> str:
    return f"'{escape_query_value(folder_id)}' in parents and trashed = false"


def name_search_query(term: str) -> str:
    return f"name contains '{escape_query_value(term)}' and trashed = false"


def escape_query_value(value: str) -> str:
    """Escape a literal for use inside single quotes in a Drive `q` expression."""
    return value.replace("\\", "\\\\").replace("'", "\\'")
