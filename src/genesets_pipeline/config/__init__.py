from .loader import default_config_path, load_config, load_config_with_overrides
from .schema import (
    APIConfig,
    DataSourceVersions,
    GMTConfig,
    KinaseConfig,
    MSigDBConfig,
    PipelineConfig,
)

__all__ = [
    "default_config_path",
    "load_config",
    "load_config_with_overrides",
    "PipelineConfig",
    "DataSourceVersions",
    "APIConfig",
    "MSigDBConfig",
    "KinaseConfig",
    "GMTConfig",
]
