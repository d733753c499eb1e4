"""Engine configuration with environment overrides."""

from counsel.config.engine_config import EngineConfig, QueueConfig, TransactionConfig

__all__: list[str] = ["EngineConfig", "QueueConfig", "TransactionConfig"]
