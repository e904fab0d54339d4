from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Jenkins Log Crawler"
    APP_VERSION: str = "1.0.0"

    # Jenkins Pipeline API (wfapi)
    JENKINS_POLL_INTERVAL_SECONDS: float = 5.0  # Delay before re-polling a running build
    JENKINS_HTTP_TIMEOUT: float = 30.0  # Per-request timeout
    JENKINS_DESCRIBE_SUFFIX: str = "wfapi/describe"

    # Crawl behaviour
    CRAWL_ERROR_POLICY: Literal["degrade", "record"] = "degrade"
    CRAWL_STOP_ON_TERMINAL: bool = False  # Scheduler loop returns after a terminal status

    # Snapshot output; None means the directory of the running program
    OUTPUT_DIR: Optional[str] = None

    # Logging
    LOG_FORMAT: str = "text"  # "text" or "json"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
