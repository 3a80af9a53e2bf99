"""Site configuration singleton."""

from pydantic import field_validator

from metastore.schemas.common import CamelModel

SITE_CONFIG_ID = "site-config"


class ObjectStorageCredentials(CamelModel):
    access_key: str | None = None
    secret_key: str | None = None
    region: str | None = None
    bucket: str | None = None
    endpoint: str | None = None


class SiteConfig(CamelModel):
    site_name: str = "VideosPlus"
    paypal_client_id: str = ""
    paypal_me_username: str = ""
    stripe_publishable_key: str = ""
    stripe_secret_key: str = ""
    telegram_username: str = ""
    video_list_title: str = "Available Videos"
    crypto: list[str] = []
    email_host: str = "smtp.gmail.com"
    email_port: str = "587"
    email_secure: bool = False
    email_user: str = ""
    email_pass: str = ""
    email_from: str = ""
    wasabi_config: ObjectStorageCredentials = ObjectStorageCredentials()

    @field_validator("crypto", mode="before")
    @classmethod
    def coerce_crypto(cls, value):
        if not value:
            return []
        return [str(v) for v in value]

    @field_validator("wasabi_config", mode="before")
    @classmethod
    def coerce_wasabi_config(cls, value):
        return value or {}

    @field_validator("email_port", mode="before")
    @classmethod
    def coerce_email_port(cls, value):
        return "587" if value in (None, "") else str(value)


class SiteConfigUpdate(CamelModel):
    site_name: str | None = None
    paypal_client_id: str | None = None
    paypal_me_username: str | None = None
    stripe_publishable_key: str | None = None
    stripe_secret_key: str | None = None
    telegram_username: str | None = None
    video_list_title: str | None = None
    crypto: list[str] | None = None
    email_host: str | None = None
    email_port: str | None = None
    email_secure: bool | None = None
    email_user: str | None = None
    email_pass: str | None = None
    email_from: str | None = None
    wasabi_config: ObjectStorageCredentials | None = None
