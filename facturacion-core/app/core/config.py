# app/core/config.py
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List


class Settings(BaseSettings):
    # --- Core ---
    environment: str = Field("development", env="ENVIRONMENT")
    app_name: str = Field("facturacion-core", env="APP_NAME")
    app_version: str = Field("0.1.0", env="APP_VERSION")
    log_level: str = Field("INFO", env="LOG_LEVEL")

    # --- Base de datos ---
    database_url: str = Field(..., env="DATABASE_URL")

    # --- CORS ---
    backend_cors_origins: List[str] | str = Field("", env="BACKEND_CORS_ORIGINS")

    # --- Numrot (proveedor tecnológico) ---
    numrot_base_url: str = Field("", env="NUMROT_BASE_URL")
    # URL específica para DS (Documento Soporte). Si está vacía usa numrot_base_url
    numrot_ds_base_url: str = Field("", env="NUMROT_DS_BASE_URL")
    numrot_radian_url: str = Field("", env="NUMROT_RADIAN_URL")
    numrot_username: str = Field("", env="NUMROT_USERNAME")
    numrot_password: str = Field("", env="NUMROT_PASSWORD")
    numrot_token_ttl: int = Field(3600, env="NUMROT_TOKEN_TTL")
    numrot_api_timeout: int = Field(300, env="NUMROT_API_TIMEOUT")
    numrot_key: str = Field("", env="NUMROT_KEY")
    numrot_secret: str = Field("", env="NUMROT_SECRET")
    numrot_emisor_nit: str = Field("", env="NUMROT_EMISOR_NIT")
    numrot_razon_social: str = Field("", env="NUMROT_RAZON_SOCIAL")

    # --- Generador de eventos Radian ---
    numrot_generator_nombre: str = Field("", env="NUMROT_GENERATOR_NOMBRE")
    numrot_generator_apellido: str = Field("", env="NUMROT_GENERATOR_APELLIDO")
    numrot_generator_identificacion: str = Field("", env="NUMROT_GENERATOR_IDENTIFICACION")

    # ============================================================================
    # RESOLUCIONES (ambientes de pruebas)
    # ============================================================================
    # NUMROT_RESOLUTIONS_ENABLED=false → no se consulta /api/Resoluciones y se
    # usan los valores NUMROT_HARDCODED_* en InvoiceControl
    # ============================================================================
    numrot_resolutions_enabled: bool = Field(True, env="NUMROT_RESOLUTIONS_ENABLED")
    numrot_hardcoded_invoice_auth: str = Field("", env="NUMROT_HARDCODED_INVOICE_AUTH")
    numrot_hardcoded_start_date: str = Field("", env="NUMROT_HARDCODED_START_DATE")
    numrot_hardcoded_end_date: str = Field("", env="NUMROT_HARDCODED_END_DATE")
    numrot_hardcoded_prefix: str = Field("", env="NUMROT_HARDCODED_PREFIX")
    numrot_hardcoded_from: str = Field("", env="NUMROT_HARDCODED_FROM")
    numrot_hardcoded_to: str = Field("", env="NUMROT_HARDCODED_TO")

    # --- InvoicePeriod para NC sin referencia (CustomizationID "22") ---
    numrot_nc_invoice_period_start_date: str = Field("", env="NUMROT_NC_INVOICE_PERIOD_START_DATE")
    numrot_nc_invoice_period_start_time: str = Field("", env="NUMROT_NC_INVOICE_PERIOD_START_TIME")
    numrot_nc_invoice_period_end_date: str = Field("", env="NUMROT_NC_INVOICE_PERIOD_END_DATE")
    numrot_nc_invoice_period_end_time: str = Field("", env="NUMROT_NC_INVOICE_PERIOD_END_TIME")

    # --- Procesamiento concurrente ---
    numrot_max_concurrent: int = Field(
        50,
        env="NUMROT_MAX_CONCURRENT",
        description="Máximo de peticiones simultáneas a Numrot (límite 1000 por token)"
    )
    numrot_batch_size: int = Field(50, env="NUMROT_BATCH_SIZE")
    numrot_rate_limit_rps: int = Field(50, env="NUMROT_RATE_LIMIT_RPS")

    # --- Circuit breaker ---
    numrot_cb_max_failures: int = Field(10, env="NUMROT_CB_MAX_FAILURES")
    numrot_cb_failure_threshold: float = Field(0.5, env="NUMROT_CB_FAILURE_THRESHOLD")
    numrot_cb_cooldown: float = Field(30.0, env="NUMROT_CB_COOLDOWN")
    numrot_cb_success_threshold: int = Field(3, env="NUMROT_CB_SUCCESS_THRESHOLD")

    # --- Documentos ---
    cdo_ambiente_default: str = Field(
        "2",
        env="CDO_AMBIENTE_DEFAULT",
        description="Ambiente por defecto: '1' producción, '2' pruebas"
    )
    numrot_enforce_issue_date_today: bool = Field(
        False,
        env="NUMROT_ENFORCE_ISSUE_DATE_TODAY",
        description="Exigir que cdo_fecha sea la fecha actual en Colombia (regla DIAN FAD09e)"
    )

    # --- DANE (nombres de municipio y departamento) ---
    dane_base_url: str = Field("https://www.datos.gov.co/resource/gdxc-w37w.json", env="DANE_BASE_URL")

    # --- Autenticación JWT de los clientes ---
    auth_enabled: bool = Field(False, env="AUTH_ENABLED")
    jwt_issuer_uri: str = Field("", env="JWT_ISSUER_URI")
    jwt_jwk_set_uri: str = Field("", env="JWT_JWK_SET_URI")
    auth_clock_skew: int = Field(120, env="AUTH_CLOCK_SKEW", description="Tolerancia en segundos para exp/nbf")
    auth_jwks_cache_ttl: int = Field(21600, env="AUTH_JWKS_CACHE_TTL")
    auth_bypass_paths: List[str] | str = Field("/health,/api/v1/health", env="AUTH_BYPASS_PATHS")

    # --- Auditoría de llamadas al proveedor ---
    audit_enabled: bool = Field(True, env="AUDIT_ENABLED")
    audit_log_request_body: bool = Field(True, env="AUDIT_LOG_REQUEST_BODY")
    audit_log_response_body: bool = Field(True, env="AUDIT_LOG_RESPONSE_BODY")
    audit_max_body_size: int = Field(102400, env="AUDIT_MAX_BODY_SIZE")

    @field_validator("cdo_ambiente_default")
    @classmethod
    def validar_ambiente(cls, v: str) -> str:
        v = (v or "").strip() or "2"
        if v not in ("1", "2"):
            raise ValueError("CDO_AMBIENTE_DEFAULT must be '1' (production) or '2' (test)")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


def validate_concurrency_config(max_concurrent: int, batch_size: int) -> None:
    """Valida los parámetros de concurrencia contra los límites de Numrot."""
    if max_concurrent <= 0:
        raise ValueError("maxConcurrent must be greater than 0")
    if max_concurrent > 1000:
        raise ValueError("maxConcurrent cannot exceed 1000 (Numrot limit per token)")
    if batch_size <= 0:
        raise ValueError("batchSize must be greater than 0")


settings = Settings()
