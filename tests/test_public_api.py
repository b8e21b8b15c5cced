import unittest

import drivebrowser


class TestPublicApi(unittest.TestCase):
    def test_top_level_exports_exist(self) -> None:
        self.assertTrue(hasattr(drivebrowser, "DriveBrowser"))
        self.assertTrue(hasattr(drivebrowser, "FileCache"))
        self.assertTrue(hasattr(drivebrowser, "AuthInfo"))
        self.assertTrue(hasattr(drivebrowser, "OAuthClient"))

        self.assertTrue(hasattr(drivebrowser, "DownloadOrchestrator"))
        self.assertTrue(hasattr(drivebrowser, "ConflictResolver"))
        self.assertTrue(hasattr(drivebrowser, "FileNode"))
        self.assertTrue(hasattr(drivebrowser, "DownloadReport"))

        self.assertTrue(hasattr(drivebrowser, "DriveBrowserError"))
        self.assertTrue(hasattr(drivebrowser, "OperationCanceledError"))

    def test___all___is_defined(self) -> None:
        self.assertTrue(hasattr(drivebrowser, "__all__"))
        self.assertIn("DriveBrowser", drivebrowser.__all__)
        self.assertIn("DriveBrowserError", drivebrowser.__all__)
        for name in drivebrowser.__all__:
            self.assertTrue(hasattr(drivebrowser, name), name)


if __name__ == "__main__":
    unittest.main()
