"""
Docker Secrets Loader

Fallback chain:
1. Docker secrets (/run/secrets/<secret_name>)
2. Environment variable with _FILE suffix pointing to file
3. Direct environment variable
4. Default value (if provided)

Example:
    # In config.py
    database_url: str = Field(
        default_factory=lambda: load_secret(
            "database_url",
            default="postgresql+asyncpg://localhost/ecoduino"
        )
    )
"""
import os
from pathlib import Path
from typing import Optional
import structlog

logger = structlog.get_logger()

SECRETS_DIR = Path("/run/secrets")


def _read_secret_file(path: Path, secret_name: str, source: str) -> Optional[str]:
    try:
        secret_value = path.read_text().strip()
    except OSError as e:
        logger.error(
            "secret_read_error",
            secret_name=secret_name,
            path=str(path),
            error=str(e)
        )
        return None

    logger.debug("secret_loaded", secret_name=secret_name, source=source)
    return secret_value


def load_secret(
    secret_name: str,
    default: Optional[str] = None,
    required: bool = False
) -> Optional[str]:
    """
    Load secret from Docker secrets, file, or environment variable

    Args:
        secret_name: Name of the secret (e.g., "secret_key")
        default: Default value if secret not found
        required: If True, raises ValueError when secret not found and no default

    Returns:
        Secret value as string, or None if not found and not required

    Raises:
        ValueError: If required=True and secret not found with no default
        FileNotFoundError: If _FILE env var points to non-existent file
    """
    secret_name_normalized = secret_name.lower().replace("-", "_")
    env_var_name = secret_name_normalized.upper()

    # 1. Docker secrets
    docker_secret_path = SECRETS_DIR / secret_name_normalized
    if docker_secret_path.exists():
        value = _read_secret_file(docker_secret_path, secret_name_normalized, "docker_secret")
        if value is not None:
            return value

    # 2. <NAME>_FILE
    env_file_var = f"{env_var_name}_FILE"
    env_file_path_str = os.getenv(env_file_var)
    if env_file_path_str:
        env_file_path = Path(env_file_path_str)
        if not env_file_path.exists():
            raise FileNotFoundError(
                f"Secret file specified by {env_file_var}={env_file_path_str} does not exist"
            )
        value = _read_secret_file(env_file_path, secret_name_normalized, "env_file")
        if value is not None:
            return value

    # 3. <NAME>
    env_value = os.getenv(env_var_name)
    if env_value:
        logger.debug("secret_loaded", secret_name=secret_name_normalized, source="env_var")
        return env_value

    # 4. Default
    if default is not None:
        logger.debug(
            "secret_loaded",
            secret_name=secret_name_normalized,
            source="default",
            is_production_safe=False
        )
        return default

    if required:
        raise ValueError(
            f"Required secret '{secret_name_normalized}' not found. "
            f"Checked: {docker_secret_path}, {env_file_var}, {env_var_name}"
        )

    logger.warning("secret_not_found", secret_name=secret_name_normalized, required=False)
    return None
