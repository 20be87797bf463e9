from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MirrorConfig(BaseSettings):
    """
    Configuración del espejo de streams.
    Prefijo en .env: MIRROR_ (ej: MIRROR_OUTPUT_DIR)
    """

    output_dir: Path = Path("output/")
    user_agent: str = "stream-mirror/0.1"
    timeout: float = 30.0
    verify_tls: bool = True
    retries: int = 2
    log_path: Path = Path("logs/streammirror.log")

    # En el .env se pone: MIRROR_HEADERS="Authorization: Bearer X, Referer: https://a/"
    headers: Union[Dict[str, str], str] = {}

    model_config = SettingsConfigDict(
        env_file="config.env",
        env_file_encoding="utf-8",
        env_prefix="MIRROR_",
        extra="ignore",
    )

    @field_validator("headers", mode="before")
    @classmethod
    def parse_headers(cls, v):
        if isinstance(v, str):
            parsed = {}
            for item in v.split(","):
                if ":" not in item:
                    continue
                key, value = item.split(":", 1)
                if key.strip():
                    parsed[key.strip()] = value.strip()
            return parsed
        return v


@lru_cache()
def get_config(env_path: Optional[Union[str, Path]] = None) -> MirrorConfig:
    """
    Devuelve la configuración cargada (cacheada).
    Si se indica una ruta de .env explícita, esta debe existir.
    """
    if env_path is None:
        return MirrorConfig()

    path = Path(env_path)
    if not path.exists():
        raise FileNotFoundError(
            f"Error Crítico: No se encontró el archivo de configuración en: {path.absolute()}"
        )

    return MirrorConfig(_env_file=path)  # type: ignore
