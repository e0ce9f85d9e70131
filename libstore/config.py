import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


@dataclass
class Settings:
    # Storage
    data_dir: str = os.getenv("LIBRARY_DATA_DIR", "data")
    record_ext: str = os.getenv("LIBRARY_RECORD_EXT", ".properties")

    # Business rules
    borrow_limit: int = int(os.getenv("LIBRARY_BORROW_LIMIT", "5"))
    admin_invite_code: str = os.getenv("LIBRARY_ADMIN_INVITE_CODE", "LIB-ADMIN-2025")

    # Application
    app_name: str = os.getenv("APP_NAME", "Library Store")
    log_level: str = os.getenv("LIBRARY_LOG_LEVEL", "INFO")

    @property
    def accounts_dir(self) -> str:
        return os.path.join(self.data_dir, "accounts")

    @property
    def books_dir(self) -> str:
        return os.path.join(self.data_dir, "books")


settings = Settings()
