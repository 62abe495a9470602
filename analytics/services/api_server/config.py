"""Runtime configuration for the Customer Segmentation API.

Settings are read from environment variables once per process. A ``.env``
file in the working directory is loaded first, so local development does
not need exported variables.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache

from dotenv import load_dotenv

VERSION = "1.0.0"
SERVICE_NAME = "customer-segmentation-api"

DEFAULT_CORS_ORIGINS = (
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Service settings.

    Attributes:
        database_url: SQLAlchemy URL of the user/purchase/segment store
        jwt_secret: HMAC secret for signing access tokens
        jwt_expire_days: Access token lifetime in days
        bcrypt_rounds: bcrypt cost factor for password hashes
        paystack_secret_key: Secret key for the Paystack API and webhook signatures
        paystack_base_url: Paystack API root
        paystack_timeout_seconds: Per-request timeout for Paystack calls
        frontend_url: Used to build the payment callback URL and allowed as a CORS origin
        cors_origins: Allowed CORS origins
        environment: Deployment environment (development, staging, production)
        otlp_endpoint: OTLP gRPC endpoint; console exporters are used when unset
        sampling_rate: Trace sampling rate (0.0-1.0)
        enable_tracing: Configure OpenTelemetry providers at startup
        kmeans_default_k: Cluster count when a run does not specify one
    """

    database_url: str = "sqlite:///./customer_segmentation.db"
    jwt_secret: str = "change-me"
    jwt_expire_days: int = 7
    bcrypt_rounds: int = 12
    paystack_secret_key: str = ""
    paystack_base_url: str = "https://api.paystack.co"
    paystack_timeout_seconds: float = 30.0
    frontend_url: str | None = None
    cors_origins: tuple[str, ...] = field(default=DEFAULT_CORS_ORIGINS)
    environment: str = "development"
    otlp_endpoint: str | None = None
    sampling_rate: float = 1.0
    enable_tracing: bool = True
    kmeans_default_k: int = 4

    def __post_init__(self) -> None:
        if self.jwt_expire_days <= 0:
            raise ValueError(f"JWT_EXPIRE_DAYS must be positive: {self.jwt_expire_days}")
        if not 0.0 <= self.sampling_rate <= 1.0:
            raise ValueError(f"SAMPLING_RATE must be between 0 and 1: {self.sampling_rate}")
        if self.kmeans_default_k < 1:
            raise ValueError(f"KMEANS_DEFAULT_K must be at least 1: {self.kmeans_default_k}")

    @property
    def allowed_origins(self) -> list[str]:
        origins = list(self.cors_origins)
        if self.frontend_url and self.frontend_url not in origins:
            origins.append(self.frontend_url)
        return origins

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables (after loading ``.env``)."""
        load_dotenv()

        cors = os.getenv("CORS_ORIGINS")
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            jwt_secret=os.getenv("JWT_SECRET", cls.jwt_secret),
            jwt_expire_days=int(os.getenv("JWT_EXPIRE_DAYS", str(cls.jwt_expire_days))),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", str(cls.bcrypt_rounds))),
            paystack_secret_key=os.getenv("PAYSTACK_SECRET_KEY", ""),
            paystack_base_url=os.getenv("PAYSTACK_BASE_URL", cls.paystack_base_url),
            paystack_timeout_seconds=float(
                os.getenv("PAYSTACK_TIMEOUT_SECONDS", str(cls.paystack_timeout_seconds))
            ),
            frontend_url=os.getenv("FRONTEND_URL"),
            cors_origins=(
                tuple(o.strip() for o in cors.split(",") if o.strip())
                if cors
                else DEFAULT_CORS_ORIGINS
            ),
            environment=os.getenv("ENVIRONMENT", cls.environment),
            otlp_endpoint=os.getenv("OTLP_ENDPOINT"),
            sampling_rate=float(os.getenv("SAMPLING_RATE", str(cls.sampling_rate))),
            enable_tracing=_env_bool("ENABLE_TRACING", cls.enable_tracing),
            kmeans_default_k=int(os.getenv("KMEANS_DEFAULT_K", str(cls.kmeans_default_k))),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings.from_env()
