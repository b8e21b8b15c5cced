import json
import os
import tempfile
import unittest

from drivebrowser.models import DownloadRequest, import_request_file, write_request_file


class TestDownloadRequest(unittest.TestCase):
    def test_json_shape(self) -> None:
        request = DownloadRequest(file_ids=["a", "b"], path="/tmp/out")
        self.assertEqual(json.loads(request.to_json()), {"fileIds": ["a", "b"], "path": "/tmp/out"})

    def test_from_json_empty_path_is_none(self) -> None:
        request = DownloadRequest.from_json('{"fileIds": ["a"], "path": ""}')
        self.assertEqual(request.file_ids, ["a"])
        self.assertIsNone(request.path)

    def test_from_json_rejects_bad_ids(self) -> None:
        with self.assertRaises(ValueError):
            DownloadRequest.from_json('{"fileIds": "a"}')
        with self.assertRaises(ValueError):
            DownloadRequest.from_json("[]")

    def test_import_consumes_sentinel_and_targets_its_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            sentinel = os.path.join(tmp, "sub", "files.drivedl")
            write_request_file(DownloadRequest(file_ids=["x"], path="/elsewhere"), sentinel)

            request = import_request_file(sentinel)

            self.assertEqual(request.file_ids, ["x"])
            self.assertEqual(request.path, os.path.join(tmp, "sub"))
            self.assertFalse(os.path.exists(sentinel))


if __name__ == "__main__":
    unittest.main()
