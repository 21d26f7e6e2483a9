from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
import sys


class ConfigurationError(ValueError):
    pass


VALID_TOKEN_STORES = ("memory", "file")


@dataclass(frozen=True)
class AppSettings:
    base_url: str
    login_path: str
    upload_path: str
    timeout_seconds: int
    jpeg_quality: int
    token_store: str
    token_cache_path: str
    log_level: str = "INFO"

    @staticmethod
    def from_env() -> "AppSettings":
        _load_dotenv_if_present()

        base_url = os.getenv("DERMA_BASE_URL", "http://localhost:8089").strip().rstrip("/")
        login_path = os.getenv("DERMA_LOGIN_PATH", "/public/login").strip()
        upload_path = os.getenv("DERMA_UPLOAD_PATH", "/uploadImage").strip()

        timeout_seconds = _parse_int_env("DERMA_TIMEOUT_SECONDS", "30")
        jpeg_quality = _parse_int_env("DERMA_JPEG_QUALITY", "80")

        token_store = os.getenv("DERMA_TOKEN_STORE", "memory").strip().lower()
        default_cache_path = os.path.join(
            os.getenv("LOCALAPPDATA", os.getcwd()),
            "DermaClient",
            "session.bin",
        )
        token_cache_path = os.getenv("DERMA_TOKEN_CACHE_PATH", default_cache_path)
        log_level = os.getenv("DERMA_LOG_LEVEL", "INFO").strip().upper()

        settings = AppSettings(
            base_url=base_url,
            login_path=login_path,
            upload_path=upload_path,
            timeout_seconds=timeout_seconds,
            jpeg_quality=jpeg_quality,
            token_store=token_store,
            token_cache_path=token_cache_path,
            log_level=log_level,
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if not self.base_url:
            raise ConfigurationError("Missing required settings: DERMA_BASE_URL")
        if not self.base_url.startswith(("http://", "https://")):
            raise ConfigurationError("DERMA_BASE_URL must start with http:// or https://")

        path_fields = {
            "DERMA_LOGIN_PATH": self.login_path,
            "DERMA_UPLOAD_PATH": self.upload_path,
        }
        invalid_paths = [name for name, value in path_fields.items() if not value.startswith("/")]
        if invalid_paths:
            raise ConfigurationError(
                "Endpoint paths must start with '/': " + ", ".join(invalid_paths)
            )

        if self.timeout_seconds <= 0:
            raise ConfigurationError("DERMA_TIMEOUT_SECONDS must be greater than 0")

        if not 1 <= self.jpeg_quality <= 100:
            raise ConfigurationError("DERMA_JPEG_QUALITY must be between 1 and 100")

        if self.token_store not in VALID_TOKEN_STORES:
            raise ConfigurationError("DERMA_TOKEN_STORE must be one of: memory, file")

        if self.token_store == "file" and not self.token_cache_path.strip():
            raise ConfigurationError("DERMA_TOKEN_CACHE_PATH is required when DERMA_TOKEN_STORE=file")


def _parse_int_env(name: str, default: str) -> int:
    raw_value = os.getenv(name, default).strip()
    try:
        return int(raw_value)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw_value!r}") from exc


def _load_dotenv_if_present(file_name: str = ".env") -> None:
    for candidate in _candidate_env_files(file_name):
        _load_env_file(candidate)


def _candidate_env_files(file_name: str) -> list[Path]:
    candidates: list[Path] = []

    explicit = os.getenv("DERMA_ENV_FILE", "").strip()
    if explicit:
        candidates.append(Path(explicit).expanduser())

    candidates.append(Path.cwd() / file_name)

    if getattr(sys, "frozen", False):
        exe_dir = Path(sys.executable).resolve().parent
        candidates.append(exe_dir / file_name)
    else:
        project_root = Path(__file__).resolve().parent.parent
        candidates.append(project_root / file_name)

    unique_candidates: list[Path] = []
    seen: set[str] = set()
    for path in candidates:
        normalized = str(path.resolve()) if path.exists() else str(path)
        if normalized in seen:
            continue
        seen.add(normalized)
        unique_candidates.append(path)
    return unique_candidates


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return

    try:
        with path.open("r", encoding="utf-8") as env_file:
            for raw_line in env_file:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue

                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip().strip('"').strip("'")

                if key and key not in os.environ:
                    os.environ[key] = value
    except OSError:
        return
