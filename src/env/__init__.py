from env.env import (
    Environment,
    get_env,
    reset_env_caches,
    get_logging_env,
    ConfigError,
    ENV_FILE,
    _load_dotenv,
)

from env.paths import (
    PROJECT_ROOT,
    artifacts_dir,
    logs_dir,
    pipelines_dir,
    run_artifacts_dir,
    workspace_dir,
)

__all__ = [
    "Environment",
    "get_env",
    "reset_env_caches",
    "get_logging_env",
    "ConfigError",
    "ENV_FILE",
    "PROJECT_ROOT",
    "artifacts_dir",
    "logs_dir",
    "pipelines_dir",
    "run_artifacts_dir",
    "workspace_dir",
    "_load_dotenv",
]
