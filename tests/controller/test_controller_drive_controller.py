import io
import json
import unittest
from unittest.mock import Mock, patch

from drivebrowser.auth import DriveServices
from drivebrowser.controller.drive_controller import DriveController, _http_error_to_info
from drivebrowser.controller.fields import ROOT_LISTING_QUERY
from drivebrowser.errors import (
    AbusiveFileError,
    NotFoundError,
    OperationCanceledError,
    RateLimitError,
)
from drivebrowser.util.cancellation import CancellationToken


def _http_error(status: int, reason: str, api_reason: str | None = None):
    from googleapiclient.errors import HttpError

    resp = Mock()
    resp.status = status
    resp.reason = reason
    body = {"error": {"message": reason}}
    if api_reason:
        body["error"]["errors"] = [{"reason": api_reason, "domain": "global"}]
    return HttpError(resp=resp, content=json.dumps(body).encode("utf-8"))


def _services() -> DriveServices:
    return DriveServices(drive=Mock(), activity=Mock(), people=Mock(), credentials=Mock())


class TestDriveControllerHelpers(unittest.TestCase):
    def test_http_error_to_info_prefers_api_reason(self) -> None:
        info = _http_error_to_info(_http_error(403, "Forbidden", "cannotDownloadAbusiveFile"))
        self.assertEqual(info.status_code, 403)
        self.assertEqual(info.reason, "cannotDownloadAbusiveFile")
        self.assertEqual(info.message, "Forbidden")
        self.assertEqual(info.details["domain"], "global")


class TestDriveControllerMocked(unittest.TestCase):
    def _mock_list(self, files_payload, next_token=None):
        services = _services()
        files_resource = Mock()
        request = Mock()

        services.drive.files.return_value = files_resource
        request.execute.return_value = {"files": files_payload, "nextPageToken": next_token}
        files_resource.list.return_value = request
        return services, files_resource

    def test_list_files_includes_supports_all_drives_kwargs(self) -> None:
        services, files_resource = self._mock_list([{"id": "A"}], next_token="t2")
        controller = DriveController.from_services(services, supports_all_drives=True)

        page = controller.list_files(ROOT_LISTING_QUERY, page_token="t1", page_size=50)

        kwargs = files_resource.list.call_args.kwargs
        self.assertTrue(kwargs.get("supportsAllDrives"))
        self.assertTrue(kwargs.get("includeItemsFromAllDrives"))
        self.assertEqual(kwargs["q"], ROOT_LISTING_QUERY)
        self.assertEqual(kwargs["pageToken"], "t1")
        self.assertEqual(kwargs["pageSize"], 50)
        self.assertEqual(page.items, [{"id": "A"}])
        self.assertEqual(page.next_page_token, "t2")

    def test_search_files_escapes_term(self) -> None:
        services, files_resource = self._mock_list([])
        controller = DriveController.from_services(services)

        controller.search_files("bob's")

        self.assertEqual(
            files_resource.list.call_args.kwargs["q"],
            "name contains 'bob\\'s' and trashed = false",
        )

    def test_get_maps_http_404_to_not_found(self) -> None:
        services = _services()
        req = Mock()
        services.drive.files.return_value.get.return_value = req
        req.execute.side_effect = _http_error(404, "Not Found")

        controller = DriveController.from_services(services)

        with self.assertRaises(NotFoundError):
            controller.get_metadata("X")

    def test_retry_on_429(self) -> None:
        services = _services()
        req = Mock()
        services.drive.files.return_value.get.return_value = req
        http_err = _http_error(429, "rate limited", "rateLimitExceeded")

        # Fail twice, then succeed.
        req.execute.side_effect = [http_err, http_err, {"id": "F1", "name": "n"}]

        controller = DriveController.from_services(services)

        with patch("time.sleep", return_value=None):
            data = controller.get_metadata("F1")

        self.assertEqual(data["id"], "F1")
        self.assertEqual(req.execute.call_count, 3)

    def test_map_429_to_rate_limit_error(self) -> None:
        services = _services()
        req = Mock()
        services.drive.files.return_value.get.return_value = req
        req.execute.side_effect = _http_error(429, "rate limited", "rateLimitExceeded")

        controller = DriveController.from_services(services)

        with patch("time.sleep", return_value=None):
            with self.assertRaises(RateLimitError):
                controller.get_metadata("X")
        self.assertEqual(req.execute.call_count, 4)


class TestDriveControllerContent(unittest.TestCase):
    def setUp(self) -> None:
        self.services = _services()
        self.files = self.services.drive.files.return_value
        self.controller = DriveController.from_services(self.services, chunk_size=512)

    def _status(self, progress: int) -> Mock:
        status = Mock()
        status.resumable_progress = progress
        return status

    def test_download_streams_chunks_and_reports_progress(self) -> None:
        seen = []
        with patch("googleapiclient.http.MediaIoBaseDownload") as downloader_cls:
            downloader = downloader_cls.return_value
            downloader.next_chunk.side_effect = [
                (self._status(512), False),
                (self._status(1000), True),
            ]

            received = self.controller.download_content(
                "F", io.BytesIO(), on_progress=seen.append, acknowledge_abuse=True
            )

        self.assertEqual(received, 1000)
        self.assertEqual(seen, [512, 1000])
        self.assertEqual(downloader_cls.call_args.kwargs["chunksize"], 512)
        self.assertTrue(self.files.get_media.call_args.kwargs["acknowledgeAbuse"])

    def test_abusive_file_is_not_retried(self) -> None:
        with patch("googleapiclient.http.MediaIoBaseDownload") as downloader_cls:
            downloader = downloader_cls.return_value
            downloader.next_chunk.side_effect = _http_error(
                403, "Forbidden", "cannotDownloadAbusiveFile"
            )

            with self.assertRaises(AbusiveFileError):
                self.controller.download_content("F", io.BytesIO())

        self.assertEqual(downloader.next_chunk.call_count, 1)
        self.assertNotIn("acknowledgeAbuse", self.files.get_media.call_args.kwargs)

    def test_cancel_stops_before_next_chunk(self) -> None:
        token = CancellationToken()

        def next_chunk():
            token.cancel()
            return self._status(512), False

        with patch("googleapiclient.http.MediaIoBaseDownload") as downloader_cls:
            downloader_cls.return_value.next_chunk.side_effect = next_chunk

            with self.assertRaises(OperationCanceledError):
                self.controller.download_content("F", io.BytesIO(), cancel_token=token)

            self.assertEqual(downloader_cls.return_value.next_chunk.call_count, 1)

    def test_export_uses_export_media(self) -> None:
        with patch("googleapiclient.http.MediaIoBaseDownload") as downloader_cls:
            downloader_cls.return_value.next_chunk.return_value = (self._status(10), True)
            self.controller.export_content("D", "application/pdf", io.BytesIO())

        self.files.export_media.assert_called_once_with(fileId="D", mimeType="application/pdf")


class TestDriveControllerActivity(unittest.TestCase):
    def test_query_activity_passes_page_token(self) -> None:
        services = _services()
        query = services.activity.activity.return_value.query
        query.return_value.execute.return_value = {
            "activities": [{"primaryActionDetail": {"edit": {}}}],
            "nextPageToken": "n2",
        }
        controller = DriveController.from_services(services)

        page = controller.query_activity({"itemName": "items/F"}, page_token="n1")

        self.assertEqual(query.call_args.kwargs["body"], {"itemName": "items/F", "pageToken": "n1"})
        self.assertEqual(len(page.items), 1)
        self.assertEqual(page.next_page_token, "n2")

    def test_get_person_name(self) -> None:
        services = _services()
        get = services.people.people.return_value.get
        get.return_value.execute.return_value = {"names": [{"displayName": "Alice"}]}
        controller = DriveController.from_services(services)

        self.assertEqual(controller.get_person_name("people/1"), "Alice")
        self.assertEqual(get.call_args.kwargs["personFields"], "names")

        get.return_value.execute.return_value = {}
        self.assertIsNone(controller.get_person_name("people/2"))


if __name__ == "__main__":
    unittest.main()
