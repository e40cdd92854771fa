"""Configuration settings for the KMS signer."""

import os
import re
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kms_eth_signer.exceptions import ConfigurationError

# Configuration Constants
ENV_PROJECT_ID = "GOOGLE_CLOUD_PROJECT"
ENV_LOCATION_ID = "GOOGLE_CLOUD_REGION"
ENV_KEY_RING_ID = "KEY_RING"
ENV_KEY_ID = "KEY_NAME"
ENV_KEY_VERSION = "KEY_VERSION"
ENV_SERVICE_ACCOUNT_PATH = "SERVICE_ACCOUNT_PATH"
DEFAULT_KEY_VERSION = 1

KEY_PATH_PATTERN = re.compile(
    r"^projects/(?P<project_id>[^/]+)/locations/(?P<location_id>[^/]+)"
    r"/keyRings/(?P<key_ring_id>[^/]+)/cryptoKeys/(?P<key_id>[^/]+)"
    r"(?:/cryptoKeyVersions/(?P<key_version>\d+))?$"
)


class ServiceAccountInfoCredentials(BaseModel):
    """Explicit service account key material."""

    kind: Literal["service_account_info"] = "service_account_info"
    info: dict[str, Any]


class ServiceAccountFileCredentials(BaseModel):
    """Service account key file on disk."""

    kind: Literal["service_account_file"] = "service_account_file"
    path: Path


class DefaultCredentials(BaseModel):
    """Application Default Credentials chain."""

    kind: Literal["default"] = "default"


Credentials = Annotated[
    ServiceAccountInfoCredentials | ServiceAccountFileCredentials | DefaultCredentials,
    Field(discriminator="kind"),
]


class KmsConfig(BaseModel):
    """Location of a secp256k1 signing key in Google Cloud KMS."""

    model_config = ConfigDict(validate_assignment=True)

    project_id: str
    location_id: str
    key_ring_id: str
    key_id: str
    key_version: int = Field(DEFAULT_KEY_VERSION, ge=1)

    credentials: Credentials = Field(default_factory=DefaultCredentials)

    @field_validator("project_id", "location_id", "key_ring_id", "key_id")
    @classmethod
    def validate_non_empty(cls, v: str) -> str:
        """Validate that fields are not empty or whitespace."""
        if not v or not v.strip():
            msg = "Field cannot be empty or whitespace"
            raise ValueError(msg)
        return v.strip()

    @property
    def key_ring_path(self) -> str:
        return f"projects/{self.project_id}/locations/{self.location_id}/keyRings/{self.key_ring_id}"

    @property
    def key_path(self) -> str:
        return f"{self.key_ring_path}/cryptoKeys/{self.key_id}"

    @property
    def key_version_path(self) -> str:
        """Full resource name of the key version used for signing."""
        return f"{self.key_path}/cryptoKeyVersions/{self.key_version}"

    def update(self, **values: Any) -> None:
        """Update fields in place; each assignment is validated."""
        for name, value in values.items():
            setattr(self, name, value)

    @classmethod
    def from_key_path(cls, key_path: str, credentials: Credentials | None = None) -> "KmsConfig":
        """
        Create configuration from a Cloud KMS key resource name.

        Args:
            key_path: ``projects/P/locations/L/keyRings/R/cryptoKeys/K[/cryptoKeyVersions/N]``
            credentials: Credential source, defaults to Application Default Credentials.

        Raises:
            ConfigurationError: If the path is not a crypto key resource name.
        """
        match = KEY_PATH_PATTERN.match(key_path.strip())
        if match is None:
            msg = f"Not a Cloud KMS crypto key path: {key_path!r}"
            raise ConfigurationError(msg)
        fields = {k: v for k, v in match.groupdict().items() if v is not None}
        if credentials is not None:
            fields["credentials"] = credentials
        return cls(**fields)

    @classmethod
    def from_env(cls) -> "KmsConfig":
        """
        Create configuration from environment variables.

        Returns:
            KmsConfig: Configuration instance with values from environment variables.

        Example:
            ```python
            config = KmsConfig.from_env()
            signer = KmsSigner(config=config)
            ```
        """
        service_account_path = os.getenv(ENV_SERVICE_ACCOUNT_PATH, "").strip()
        credentials: Credentials = (
            ServiceAccountFileCredentials(path=Path(service_account_path))
            if service_account_path
            else DefaultCredentials()
        )
        return cls(
            project_id=os.getenv(ENV_PROJECT_ID, ""),
            location_id=os.getenv(ENV_LOCATION_ID, ""),
            key_ring_id=os.getenv(ENV_KEY_RING_ID, ""),
            key_id=os.getenv(ENV_KEY_ID, ""),
            key_version=os.getenv(ENV_KEY_VERSION, str(DEFAULT_KEY_VERSION)),
            credentials=credentials,
        )
