import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import Mock, patch

from drivebrowser.auth import AuthInfo, DriveServices, OAuthClient
from drivebrowser.errors import AuthExpiredError


def _write_token(path: Path, **extra) -> None:
    token_payload = {
        "token": "fake-token",
        "refresh_token": "fake-refresh-token",
        "token_uri": "https://oauth2.googleapis.com/token",
        "client_id": "fake-client-id",
        "client_secret": "fake-client-secret",
        "scopes": ["https://www.googleapis.com/auth/drive.readonly"],
        "type": "authorized_user",
    }
    token_payload.update(extra)
    path.write_text(json.dumps(token_payload), encoding="utf-8")


class TestOAuthClient(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self._tmp.name)
        self.token_file = self.tmp_path / "token.json"
        self.info = AuthInfo(
            client_secrets_file=str(self.tmp_path / "client_secrets.json"),
            token_file=str(self.token_file),
            scopes=("https://www.googleapis.com/auth/drive.readonly",),
        )

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_get_credentials_loads_token_file_without_refresh(self) -> None:
        _write_token(self.token_file)
        client = OAuthClient(self.info)

        creds = client.get_credentials(ensure_valid=False)

        # Credentials object should be created and have a refresh_token.
        self.assertTrue(hasattr(creds, "refresh_token"))
        self.assertEqual(creds.refresh_token, "fake-refresh-token")

    def test_invalidated_token_raises_auth_expired(self) -> None:
        from google.auth.exceptions import RefreshError

        _write_token(self.token_file, expiry="2000-01-01T00:00:00Z")
        client = OAuthClient(self.info)

        with patch(
            "google.oauth2.credentials.Credentials.refresh",
            side_effect=RefreshError("invalid_grant"),
        ):
            with self.assertRaises(AuthExpiredError):
                client.get_credentials()

    def test_revoke_deletes_token_file(self) -> None:
        _write_token(self.token_file)
        client = OAuthClient(self.info)

        client.revoke()
        client.revoke()

        self.assertFalse(self.token_file.exists())

    def test_build_services_reauthenticates_once(self) -> None:
        _write_token(self.token_file)
        services = DriveServices(drive=Mock(), activity=Mock(), people=Mock(), credentials=Mock())
        client = OAuthClient(self.info)

        with patch.object(
            OAuthClient,
            "_build_and_verify",
            side_effect=[AuthExpiredError("expired"), services],
        ) as build:
            with self.assertLogs("drivebrowser.auth.oauth_client", level="WARNING"):
                result = client.build_services()

        self.assertIs(result, services)
        self.assertEqual(build.call_count, 2)
        self.assertFalse(self.token_file.exists())


if __name__ == "__main__":
    unittest.main()
