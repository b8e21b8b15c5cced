from .busy import OperationLock
from .cancellation import CancellationToken, is_cancelled
from .mime import (
    FOLDER_MIME,
    PDF_MIME,
    SHORTCUT_MIME,
    choose_export_mime,
    is_folder,
)
from .paths import (
    export_extension,
    md5_of_file,
    path_exists,
    remove_partial_output,
    sanitize_filename,
    unique_path,
)
from .time import parse_rfc3339, parse_rfc3339_or_none, to_rfc3339

__all__ = [
    "OperationLock",
    "CancellationToken",
    "is_cancelled",
    "FOLDER_MIME",
    "PDF_MIME",
    "SHORTCUT_MIME",
    "choose_export_mime",
    "is_folder",
    "export_extension",
    "md5_of_file",
    "path_exists",
    "remove_partial_output",
    "sanitize_filename",
    "unique_path",
    "parse_rfc3339",
    "parse_rfc3339_or_none",
    "to_rfc3339",
]
