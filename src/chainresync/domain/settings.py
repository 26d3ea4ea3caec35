"""
Settings models.

Loaded from a JSON file by the config repository; every field has a default
so an absent file is valid.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import AccessMethod


class WinRMSettings(BaseModel):
    """Connection settings for the remote execution transport."""

    model_config = ConfigDict(extra="ignore")

    use_ssl: bool = Field(False, description="Use HTTPS (5986) instead of HTTP (5985)")
    port_http: int = Field(5985, description="WinRM HTTP port")
    port_https: int = Field(5986, description="WinRM HTTPS port")
    auth: str = Field("kerberos", description="pywinrm transport used without explicit credentials")
    credential_auth: str = Field("ntlm", description="pywinrm transport used with explicit credentials")
    verify_ssl: bool = Field(True, description="Validate the server certificate over HTTPS")
    ca_trust_path: Optional[str] = Field(None, description="CA bundle for certificate validation")

    @field_validator("port_http", "port_https")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if v < 1 or v > 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    def endpoint(self, host: str) -> str:
        scheme, port = ("https", self.port_https) if self.use_ssl else ("http", self.port_http)
        return f"{scheme}://{host}:{port}/wsman"


class GatewaySettings(BaseModel):
    """Top-level runtime settings."""

    model_config = ConfigDict(extra="ignore")

    default_method: AccessMethod = Field(AccessMethod.MANAGEMENT_QUERY, description="Transport when none is given")
    timeout_seconds: float = Field(60.0, description="Per-call timeout")
    max_workers: int = Field(8, description="Hosts processed concurrently")
    powershell_executable: str = Field("powershell.exe", description="Windows PowerShell used for WMI calls")
    winrm: WinRMSettings = Field(default_factory=WinRMSettings)

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout_seconds must be positive")
        return v

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_workers must be at least 1")
        return v
