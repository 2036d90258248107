from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./timesheet.db"

    # Azure AD (tab SSO tokens and Graph on-behalf-of)
    azure_ad_instance: str = "https://login.microsoftonline.com"
    azure_ad_tenant_id: str = ""
    azure_ad_client_id: str = ""
    azure_ad_client_secret: str = ""
    azure_ad_application_id_uri: str = ""
    # Semicolon or comma separated, TENANT_ID is replaced with the tenant id
    azure_ad_valid_issuers: str = "https://login.microsoftonline.com/TENANT_ID/v2.0;https://sts.windows.net/TENANT_ID/"
    graph_scope: str = "https://graph.microsoft.com/User.Read https://graph.microsoft.com/User.ReadBasic.All"

    # Bot
    microsoft_app_id: str = ""
    microsoft_app_password: str = ""
    app_base_uri: str = ""
    manifest_id: str = ""

    # Timesheet rules
    timesheet_freeze_day_of_month: int = 10
    weekly_efforts_limit: int = 44
    daily_efforts_limit: int = 12

    # Cache durations
    card_cache_duration_in_hour: int = 12
    user_part_of_projects_cache_duration_in_hour: int = 1
    manager_reportees_cache_duration_in_hours: int = 1
    manager_project_validation_cache_duration_in_hours: int = 1

    # Reminders (crontab syntax, evaluated in scheduler timezone)
    reminder_cron: str = "0 10 * * 1-5"
    scheduler_enabled: bool = True

    # Card text locale, passed explicitly to the card builder
    default_locale: str = "en-US"

    # Application
    app_env: str = "development"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def valid_issuers(self) -> List[str]:
        issuers = self.azure_ad_valid_issuers.replace(",", ";").split(";")
        return [
            issuer.strip().replace("TENANT_ID", self.azure_ad_tenant_id)
            for issuer in issuers
            if issuer.strip()
        ]

    @property
    def valid_audiences(self) -> List[str]:
        return [aud for aud in (self.azure_ad_client_id, self.azure_ad_application_id_uri) if aud]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
