"""Tests for the signing endpoint: authentication, upload handling, dispatch and cleanup."""

from fastapi.testclient import TestClient

from sign_service.main import create_app
from sign_service.src.core.exceptions import ToolInvocationFailure
from sign_service.src.schemas import Command, ToolFailed, VerifyResult
from sign_service.src.utils.work_with_certstore import CertificateStoreInvoker, StoreCertificate
from tests.conftest import ROTATED_AUTHORIZATION, StubInvoker, staging_entries

THUMBPRINT = "0123456789ABCDEF0123456789ABCDEF01234567"
PAYLOAD = b"MZ\x90\x00\x03\x00\x00\x00payload"


def upload(client, headers, params=None, file_name="app.exe", content=PAYLOAD, data=None):
    return client.post(
        "/signtool",
        params=params if params is not None else {"command": "sign"},
        headers=headers,
        data=data,
        files={"formFile": (file_name, content, "application/octet-stream")},
    )


def raw_upload(client, headers, file_name="app.exe", content=PAYLOAD, params=None):
    return client.post(
        "/signtool",
        params=params if params is not None else {"command": "sign"},
        headers={
            **headers,
            "Content-Type": "application/octet-stream",
            "Content-Disposition": f'attachment; filename="{file_name}"',
        },
        content=content,
    )


class TestAuthentication:
    def test_missing_credentials_get_challenge(self, client, config, stub_invoker):
        response = upload(client, {})

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == 'Basic realm="code-signing"'
        assert stub_invoker.calls == []
        assert staging_entries(config) == []

    def test_wrong_credentials_do_no_work(self, client, config, stub_invoker):
        response = upload(client, {"Authorization": "Basic d3Jvbmc6d3Jvbmc="})

        assert response.status_code == 401
        assert "d3Jvbmc" not in response.text
        assert stub_invoker.calls == []
        assert staging_entries(config) == []

    def test_rotated_credential_is_accepted(self, client):
        response = upload(client, {"Authorization": ROTATED_AUTHORIZATION})

        assert response.status_code == 200


class TestSign:
    def test_multipart_round_trip(self, client, auth_headers, config, stub_invoker):
        response = upload(client, auth_headers, params={"command": "sign", "options": "q", "sha1": THUMBPRINT})

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/octet-stream"
        assert response.headers["content-disposition"] == 'attachment; filename="app.exe"'
        assert response.content == PAYLOAD

        request = stub_invoker.calls[0]
        assert request.command is Command.SIGN
        assert request.options == ("q",)
        assert request.arguments == (("sha1", THUMBPRINT),)
        assert staging_entries(config) == []

    def test_octet_stream_round_trip(self, client, auth_headers, config, stub_invoker):
        response = raw_upload(client, auth_headers, file_name="setup.msi")

        assert response.status_code == 200
        assert response.headers["content-disposition"] == 'attachment; filename="setup.msi"'
        assert response.content == PAYLOAD
        assert stub_invoker.staged[0].file_name == "setup.msi"
        assert staging_entries(config) == []

    def test_command_is_case_insensitive(self, client, auth_headers, stub_invoker):
        response = upload(client, auth_headers, params={"command": "Sign"})

        assert response.status_code == 200
        assert stub_invoker.calls[0].command is Command.SIGN

    def test_each_request_gets_its_own_directory(self, client, auth_headers, stub_invoker):
        upload(client, auth_headers)
        upload(client, auth_headers)

        first, second = stub_invoker.staged
        assert first.working_directory != second.working_directory


class TestRejections:
    def test_traversal_in_multipart_file_name(self, client, auth_headers, config, stub_invoker):
        response = upload(client, auth_headers, file_name="../evil.exe")

        assert response.status_code == 400
        assert stub_invoker.calls == []
        assert staging_entries(config) == []

    def test_windows_path_in_multipart_file_name(self, client, auth_headers, config, stub_invoker):
        for file_name in ("C:\\dir\\evil.exe", "\\\\server\\share\\evil.exe"):
            response = upload(client, auth_headers, file_name=file_name)

            assert response.status_code == 400
            assert "invalid file name" in response.json()["detail"]

        assert stub_invoker.calls == []
        assert staging_entries(config) == []

    def test_query_is_checked_before_body_is_read(self, client, auth_headers, stub_invoker):
        # Тело без boundary не разобрать, ошибка должна прийти из строки запроса
        response = client.post(
            "/signtool",
            params={"command": "sign", "options": "debug"},
            headers={**auth_headers, "Content-Type": "multipart/form-data"},
            content=b"not a multipart body",
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "invalid option debug"
        assert stub_invoker.calls == []

    def test_traversal_in_content_disposition(self, client, auth_headers, config, stub_invoker):
        for file_name in ("../evil.exe", "..\\evil.exe", "sub/app.exe"):
            response = raw_upload(client, auth_headers, file_name=file_name)

            assert response.status_code == 400
            assert "invalid file name" in response.json()["detail"]

        assert stub_invoker.calls == []
        assert staging_entries(config) == []

    def test_unsupported_content_type(self, client, auth_headers, stub_invoker):
        response = client.post(
            "/signtool",
            params={"command": "sign"},
            headers={**auth_headers, "Content-Type": "text/plain"},
            content=b"hello",
        )

        assert response.status_code == 400
        assert stub_invoker.calls == []

    def test_more_than_one_file(self, client, auth_headers, stub_invoker):
        response = client.post(
            "/signtool",
            params={"command": "sign"},
            headers=auth_headers,
            files=[
                ("formFile", ("a.exe", b"a", "application/octet-stream")),
                ("formFile", ("b.exe", b"b", "application/octet-stream")),
            ],
        )

        assert response.status_code == 400
        assert "exactly one file" in response.json()["detail"]
        assert stub_invoker.calls == []

    def test_disallowed_option_names_token(self, client, auth_headers, config, stub_invoker):
        response = upload(client, auth_headers, params={"command": "sign", "options": "q,debug"})

        assert response.status_code == 400
        assert response.json()["detail"] == "invalid option debug"
        assert stub_invoker.calls == []
        assert staging_entries(config) == []

    def test_injection_in_keyed_argument(self, client, auth_headers, stub_invoker):
        for params in (
            {"command": "sign", "fd": "SHA256 /p secret"},
            {"command": "sign", "td": 'SHA256"'},
            {"command": "sign", "sha1": "not-hex"},
            {"command": "sign", "tr": "not a url"},
        ):
            response = upload(client, auth_headers, params=params)
            assert response.status_code == 400

        assert stub_invoker.calls == []

    def test_unknown_command(self, client, auth_headers, stub_invoker):
        response = upload(client, auth_headers, params={"command": "timestamp"})

        assert response.status_code == 400
        assert stub_invoker.calls == []


class TestVerifyAndFailures:
    def test_verify_returns_ordered_record(self, config, auth_headers):
        invoker = StubInvoker(lambda request, content: VerifyResult(
            certificate=THUMBPRINT,
            status="Valid",
            status_message="Signature verified.",
            path="app.exe",
        ))
        client = TestClient(create_app(config, invoker))

        response = upload(client, auth_headers, params={}, data={"command": "verify"})

        assert response.status_code == 200
        assert list(response.json().items()) == [
            ("SignerCertificate", THUMBPRINT),
            ("Status", "Valid"),
            ("StatusMessage", "Signature verified."),
            ("Path", "app.exe"),
        ]
        assert invoker.calls[0].command is Command.VERIFY

    def test_tool_failure_is_plain_text(self, config, auth_headers):
        invoker = StubInvoker(lambda request, content: ToolFailed(
            exit_code=1, stdout="Done Adding Additional Store\n", stderr="SignTool Error: No certificates were found.\n"
        ))
        client = TestClient(create_app(config, invoker))

        response = upload(client, auth_headers)

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("text/plain")
        assert response.headers["X-Signtool-Exit-Code"] == "1"
        assert response.text == "Done Adding Additional Store\nSignTool Error: No certificates were found.\n"
        assert staging_entries(config) == []

    def test_invocation_failure_is_structured_error(self, config, auth_headers):
        invoker = StubInvoker()
        invoker.error = ToolInvocationFailure("failed to start signtool.exe")
        client = TestClient(create_app(config, invoker))

        response = upload(client, auth_headers)

        assert response.status_code == 500
        assert response.json() == {"detail": "failed to start signtool.exe"}
        assert staging_entries(config) == []

    def test_host_failure_detail_hides_staging_path(self, config, auth_headers):
        class Store:
            def find_by_thumbprint(self, thumbprint):
                return []

        class Host:
            async def sign_file(self, *args):
                return {}

            async def verify_file(self, path):
                raise ToolInvocationFailure(f"powershell.exe exited with 1: Cannot find path '{path}'")

        client = TestClient(create_app(config, CertificateStoreInvoker(Store(), Host())))

        response = upload(client, auth_headers, params={"command": "verify"})

        assert response.status_code == 500
        assert response.json() == {"detail": "powershell.exe exited with 1: Cannot find path 'app.exe'"}
        assert config.staging_root not in response.text

    def test_unexpected_error_detail_hides_staging_path(self, config, auth_headers):
        invoker = StubInvoker()
        invoker.error = RuntimeError(f"disk error under {config.staging_root}")
        client = TestClient(create_app(config, invoker))

        response = upload(client, auth_headers)

        assert response.status_code == 500
        assert config.staging_root not in response.text
        assert staging_entries(config) == []

    def test_ambiguous_certificate_is_caller_error(self, config, auth_headers):
        class Store:
            def find_by_thumbprint(self, thumbprint):
                return [
                    StoreCertificate(thumbprint=thumbprint, subject="CN=One", pem=""),
                    StoreCertificate(thumbprint=thumbprint, subject="CN=Two", pem=""),
                ]

        class Host:
            calls = 0

            async def sign_file(self, *args):
                Host.calls += 1
                return {"Status": "Valid"}

            async def verify_file(self, path):
                Host.calls += 1
                return {}

        client = TestClient(create_app(config, CertificateStoreInvoker(Store(), Host())))

        response = upload(client, auth_headers, params={"command": "sign", "sha1": THUMBPRINT})

        assert response.status_code == 400
        assert "ambiguous" in response.json()["detail"]
        assert Host.calls == 0
        assert staging_entries(config) == []
