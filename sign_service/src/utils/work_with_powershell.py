# Внешние зависимости
import json
from typing import Any, Dict, Optional
# Внутренние модули
from sign_service.src.core.exceptions import ToolInvocationFailure
from sign_service.src.utils.process import run_process
from sign_service.src.utils.work_with_certstore import StoreCertificate


CERTIFICATE_STORE_PATH = "Cert:\\CurrentUser\\My\\"

# Результат Set/Get-AuthenticodeSignature в виде четырех полей JSON
SELECT_RESULT = (
    "$pem = ''; "
    "if ($sig.SignerCertificate) { "
    "$pem = \"-----BEGIN CERTIFICATE-----`n\" + "
    "[Convert]::ToBase64String($sig.SignerCertificate.RawData, 'InsertLineBreaks') + "
    "\"`n-----END CERTIFICATE-----\" }; "
    "[ordered]@{ SignerCertificate = $pem; Status = $sig.Status.ToString(); "
    "StatusMessage = $sig.StatusMessage; Path = $sig.Path } | ConvertTo-Json -Compress"
)


def ps_quote(value: str) -> str:
    """Строка PowerShell в одинарных кавычках"""
    return "'" + value.replace("'", "''") + "'"


class PowerShellHost:
    def __init__(self, executable: str = "powershell.exe"):
        self.executable = executable

    async def _run(self, script: str) -> Dict[str, Any]:
        result = await run_process([self.executable, "-NoProfile", "-NonInteractive", "-Command", script])

        if result.exit_code != 0:
            raise ToolInvocationFailure(
                f"{self.executable} exited with {result.exit_code}: {result.stderr.strip()}"
            )

        try:
            properties = json.loads(result.stdout)
        except json.JSONDecodeError as err:
            raise ToolInvocationFailure(f"unexpected output from {self.executable}: {err}") from err

        if not isinstance(properties, dict):
            raise ToolInvocationFailure(f"unexpected output from {self.executable}")

        return properties

    async def sign_file(
            self,
            path: str,
            certificate: StoreCertificate,
            digest_algorithm: str,
            timestamp_server: Optional[str]
    ) -> Dict[str, Any]:
        script = (
            f"$cert = Get-Item -LiteralPath {ps_quote(CERTIFICATE_STORE_PATH + certificate.thumbprint)}; "
            f"$sig = Set-AuthenticodeSignature -LiteralPath {ps_quote(path)} -Certificate $cert "
            f"-HashAlgorithm {ps_quote(digest_algorithm)}"
        )
        if timestamp_server:
            script += f" -TimestampServer {ps_quote(timestamp_server)}"

        return await self._run(f"{script}; {SELECT_RESULT}")

    async def verify_file(self, path: str) -> Dict[str, Any]:
        return await self._run(f"$sig = Get-AuthenticodeSignature -LiteralPath {ps_quote(path)}; {SELECT_RESULT}")
