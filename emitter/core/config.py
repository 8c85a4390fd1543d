from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    app_env: str = Field("development", alias="APP_ENV")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    service_name: str = Field("event-emitter", alias="SERVICE_NAME")

    # ── Registry behaviour ────────────────────────────────────────────────────

    # Guard the subscription table with a lock. The lock is only held for
    # table bookkeeping, never while a listener runs.
    emitter_thread_safe: bool = Field(True, alias="EMITTER_THREAD_SAFE")

    # False: a raising listener aborts the rest of the publish pass and the
    # exception reaches the publisher.
    # True:  the failure is logged and the remaining listeners still run.
    emitter_isolate_listener_errors: bool = Field(
        False, alias="EMITTER_ISOLATE_LISTENER_ERRORS"
    )

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
