from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List

class Settings(BaseSettings):
    # Checked-out source tree shared by every step
    workspace: str = "."
    shell: str = "/bin/sh"
    
    # Step settings
    step_timeout: int = 0  # 0 disables the per-step timeout
    output_tail_lines: int = 1000
    
    # Used when a pipeline declares no `on:` branch filters
    allowed_branches: List[str] = ["main"]
    
    log_level: str = "INFO"
    
    # Results upload
    upload_url: str = ""
    upload_token: str = ""
    upload_timeout: float = 60.0
    
    # Live status, disabled when empty
    redis_url: str = ""

    class Config:
        env_file = ".env"
        env_prefix = "CHECKRUN_"

@lru_cache()
def get_settings() -> Settings:
    return Settings()
