"""
Configuration management for the pool ledger.
"""
import json
import os
from dataclasses import dataclass, asdict


@dataclass
class PoolDefaults:
    """Defaults applied when a pool definition leaves them out."""
    fee: int = 30  # basis points


@dataclass
class DatabaseConfig:
    """Database configuration."""
    path: str = "./amm_data"
    in_memory: bool = False
    write_buffer_size: int = 64 * 1024 * 1024  # 64MB
    max_open_files: int = 1000


@dataclass
class MonitoringConfig:
    """Monitoring configuration."""
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 9090


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class Config:
    """Main configuration."""
    pool: PoolDefaults
    database: DatabaseConfig
    monitoring: MonitoringConfig
    logging: LoggingConfig

    @classmethod
    def default(cls) -> 'Config':
        """Create default configuration."""
        return cls(
            pool=PoolDefaults(),
            database=DatabaseConfig(),
            monitoring=MonitoringConfig(),
            logging=LoggingConfig()
        )

    @classmethod
    def from_file(cls, path: str) -> 'Config':
        """Load configuration from JSON file."""
        with open(path, 'r') as f:
            data = json.load(f)

        return cls(
            pool=PoolDefaults(**data.get('pool', {})),
            database=DatabaseConfig(**data.get('database', {})),
            monitoring=MonitoringConfig(**data.get('monitoring', {})),
            logging=LoggingConfig(**data.get('logging', {}))
        )

    def to_file(self, path: str):
        """Save configuration to JSON file."""
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'pool': asdict(self.pool),
            'database': asdict(self.database),
            'monitoring': asdict(self.monitoring),
            'logging': asdict(self.logging)
        }
