"""
Settings and credentials, loaded once from the environment at process start.
"""
import os
from enum import Enum
from typing import Optional, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from flowtask.exceptions import ConfigurationError

DEFAULT_BASE_URL = "https://flow.team"


class EnrichmentStrategy(str, Enum):
    """How much of the comment thread the pipeline assembles."""
    FULL = "full"
    DETAIL_ONLY = "detail_only"


class DeletedRemarkPolicy(str, Enum):
    """What to do with remarks whose delete flag is set."""
    RETAIN = "retain"
    HIDE = "hide"


class Credentials(BaseModel):
    """Opaque Flow credentials. Immutable for the life of the process."""
    model_config = ConfigDict(frozen=True)

    access_token: str = Field(..., min_length=1, repr=False)
    user_id: str = Field(..., min_length=1)
    org_id: str = Field(..., min_length=1)


class FlowSettings(BaseModel):
    """Service configuration."""
    model_config = ConfigDict(frozen=True)

    credentials: Credentials
    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = Field(30.0, gt=0)
    remark_page_size: int = Field(100, gt=0)
    enrichment_strategy: EnrichmentStrategy = EnrichmentStrategy.FULL
    deleted_remarks: Optional[DeletedRemarkPolicy] = None
    reply_concurrency: int = Field(8, gt=0)
    service_port: int = 8004

    @property
    def effective_deleted_remarks(self) -> DeletedRemarkPolicy:
        """Delete-flag policy, defaulting per strategy when not configured."""
        if self.deleted_remarks is not None:
            return self.deleted_remarks
        if self.enrichment_strategy == EnrichmentStrategy.DETAIL_ONLY:
            return DeletedRemarkPolicy.HIDE
        return DeletedRemarkPolicy.RETAIN

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "FlowSettings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            FlowSettings instance

        Raises:
            ConfigurationError: If credentials are missing or a value is invalid
        """
        env = os.environ if environ is None else environ

        access_token = env.get("FLOW_ACCESS_TOKEN")
        user_id = env.get("FLOW_USER_ID")
        org_id = env.get("FLOW_USE_INTT_ID")
        missing = [
            name for name, value in (
                ("FLOW_ACCESS_TOKEN", access_token),
                ("FLOW_USER_ID", user_id),
                ("FLOW_USE_INTT_ID", org_id),
            ) if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}",
                context={"missing": missing}
            )

        deleted_remarks = None
        if env.get("FLOW_DELETED_REMARKS"):
            deleted_remarks = _parse(env, "FLOW_DELETED_REMARKS", None, DeletedRemarkPolicy)

        try:
            return cls(
                credentials=Credentials(
                    access_token=access_token,
                    user_id=user_id,
                    org_id=org_id,
                ),
                base_url=env.get("FLOW_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
                request_timeout=_parse(env, "FLOW_REQUEST_TIMEOUT", "30", float),
                remark_page_size=_parse(env, "FLOW_REMARK_PAGE_SIZE", "100", int),
                enrichment_strategy=_parse(env, "FLOW_ENRICHMENT_STRATEGY", "full", EnrichmentStrategy),
                deleted_remarks=deleted_remarks,
                reply_concurrency=_parse(env, "FLOW_REPLY_CONCURRENCY", "8", int),
                service_port=_parse(env, "FLOW_SERVICE_PORT", "8004", int),
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings: {e}", original_error=e)


def _parse(env: Mapping[str, str], name: str, default: Optional[str], convert):
    """Read one variable and convert it, reporting the variable name on failure."""
    raw = env.get(name, default)
    value = raw.strip()
    if isinstance(convert, type) and issubclass(convert, Enum):
        value = value.lower()
    try:
        return convert(value)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid value for {name}: {raw!r}",
            context={"variable": name, "value": raw},
            original_error=e
        )
