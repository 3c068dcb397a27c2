"""Per-provider credential models.

Each provider gets its own model carrying only the fields that provider
uses. The browser speaks camelCase (``botToken``, ``channelId``); Python code
uses snake_case. Unknown wire fields are dropped so a client can never smuggle
secrets such as ``clientSecret`` into a stored record.
"""

from typing import Annotated, Any, Dict, Literal, Mapping, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from connector_proxy.core.errors import CredentialValidationError, UnknownIntegrationError


class BaseCredentials(BaseModel):
    """Fields common to every credential bag."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    provider: str

    def is_empty(self) -> bool:
        """True when no credential field carries a value."""
        return not any(self.model_dump(exclude={"provider"}).values())

    def to_wire(self) -> Dict[str, Any]:
        """camelCase dict, without unset fields, as the browser sends it."""
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"provider"})


class SlackCredentials(BaseCredentials):
    provider: Literal["slack"] = "slack"
    access_token: Optional[str] = None
    bot_token: Optional[str] = None
    workspace_id: Optional[str] = None
    channel_id: Optional[str] = None


class GoogleDriveCredentials(BaseCredentials):
    provider: Literal["google-drive"] = "google-drive"
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


class GoogleAnalyticsCredentials(BaseCredentials):
    provider: Literal["google-analytics"] = "google-analytics"
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


class NotionCredentials(BaseCredentials):
    provider: Literal["notion"] = "notion"
    api_key: Optional[str] = None
    database_id: Optional[str] = None
    workspace_id: Optional[str] = None


class ZapierCredentials(BaseCredentials):
    provider: Literal["zapier"] = "zapier"
    access_token: Optional[str] = None
    webhook_url: Optional[str] = None


class DiscordCredentials(BaseCredentials):
    provider: Literal["discord"] = "discord"
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    bot_token: Optional[str] = None
    channel_id: Optional[str] = None


Credentials = Annotated[
    Union[
        SlackCredentials,
        GoogleDriveCredentials,
        GoogleAnalyticsCredentials,
        NotionCredentials,
        ZapierCredentials,
        DiscordCredentials,
    ],
    Field(discriminator="provider"),
]

CREDENTIAL_TYPES: Dict[str, Type[BaseCredentials]] = {
    "slack": SlackCredentials,
    "google-drive": GoogleDriveCredentials,
    "google-analytics": GoogleAnalyticsCredentials,
    "notion": NotionCredentials,
    "zapier": ZapierCredentials,
    "discord": DiscordCredentials,
}

credentials_adapter = TypeAdapter(Credentials)


def parse_credentials(provider: str, raw: Optional[Mapping[str, Any]]) -> BaseCredentials:
    """Validate a raw credential bag for ``provider``."""
    model = CREDENTIAL_TYPES.get(provider)
    if model is None:
        raise UnknownIntegrationError(provider)

    if isinstance(raw, BaseCredentials):
        if raw.provider != provider:
            raise CredentialValidationError(
                f"Credentials for {raw.provider} cannot be used with {provider}"
            )
        return raw

    data = dict(raw or {})
    data.pop("provider", None)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise CredentialValidationError(f"Malformed credentials: {fields}") from e
