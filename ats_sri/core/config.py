"""
ATS-SRI Core Configuration
Application settings and storage paths.
"""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "ATS-SRI"
    app_version: str = "1.0.0"
    debug: bool = True
    host: str = "0.0.0.0"
    port: int = 8000

    # Generated reports live under <storage_dir>/ats/<ruc>/
    storage_dir: str = "storage"
    # SRI at.xsd; without it only structural validation runs
    ats_xsd_path: Optional[str] = None
    max_xsd_errors: int = 20

    rate_limit: str = "60/minute"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()


def get_ats_dir(ruc: str) -> Path:
    """
    Directory where the ATS files of a company are written.
    Raises ValueError when the identification would leave <storage_dir>/ats.
    """
    base = Path(settings.storage_dir) / "ats"
    directorio = base / ruc
    if not ruc or directorio.resolve().parent != base.resolve():
        raise ValueError(f"Identificación del informante no válida: {ruc!r}")
    return directorio
