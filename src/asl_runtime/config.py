"""
Runtime configuration
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class EngineSettings:
    """Settings read from the environment, with ``.env`` support"""
    log_level: str = "INFO"
    log_format: str = DEFAULT_LOG_FORMAT
    state_machine_name: str = "machine"
    execution_name: str = "execution"
    role_arn: str = "machine-role"
    execution_history: int = 100

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "EngineSettings":
        load_dotenv(dotenv_path)
        return cls(
            log_level=os.getenv("ASL_RUNTIME_LOG_LEVEL", cls.log_level).upper(),
            log_format=os.getenv("ASL_RUNTIME_LOG_FORMAT", cls.log_format),
            state_machine_name=os.getenv("ASL_RUNTIME_STATE_MACHINE_NAME", cls.state_machine_name),
            execution_name=os.getenv("ASL_RUNTIME_EXECUTION_NAME", cls.execution_name),
            role_arn=os.getenv("ASL_RUNTIME_ROLE_ARN", cls.role_arn),
            execution_history=int(os.getenv("ASL_RUNTIME_EXECUTION_HISTORY", cls.execution_history)),
        )


def configure_logging(settings: Optional[EngineSettings] = None):
    settings = settings or EngineSettings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=settings.log_format,
    )
