# StaffDesk - Configuration
# Application settings loaded from environment variables

from functools import lru_cache
from typing import Optional
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    
    Create a .env file in the project root for local development:
    
        # .env
        STAFFDESK_DB_SERVER=localhost
        STAFFDESK_DB_NAME=staffdesk
        STAFFDESK_DB_USER=staffdesk_app
        STAFFDESK_DB_PASSWORD=your_password_here
    
    Or point at any SQLAlchemy URL directly (handy for SQLite in dev/tests):
    
        STAFFDESK_DB_URL=sqlite:///./staffdesk.db
    
    For production, set these as actual environment variables.
    """
    
    model_config = SettingsConfigDict(
        env_prefix="STAFFDESK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )
    
    # Application
    app_name: str = "StaffDesk"
    debug: bool = False
    log_level: str = "INFO"
    
    # Explicit SQLAlchemy URL; wins over the SQL Server fields below
    db_url: Optional[str] = None
    
    # Database - SQL Server connection
    db_server: str = "localhost"
    db_port: int = 1433
    db_name: str = "staffdesk"
    db_user: str = "staffdesk_app"
    db_password: str = "staffdesk_password"
    
    # Optional: Schema for all tables (e.g., "hr")
    db_schema: Optional[str] = None
    
    # Use Windows Authentication instead of SQL auth
    db_trusted_connection: bool = False
    
    # Connection pool settings
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800  # Recycle connections after 30 min
    
    # Session settings
    session_expire_minutes: int = 480  # 8 hours
    
    # Workflow policy
    auto_approve_admin_timesheets: bool = True
    regular_hours_per_week: int = 40
    max_hours_per_week: int = 168
    sick_leave_attachment_threshold_days: int = 3
    
    # Listing
    default_page_limit: int = 20
    max_page_limit: int = 100
    
    @property
    def database_url(self) -> str:
        """
        Build the SQLAlchemy connection URL.
        
        Uses db_url when given, otherwise pyodbc with ODBC Driver 17
        for SQL Server.
        """
        if self.db_url:
            return self.db_url
        
        if self.db_trusted_connection:
            # Windows Authentication
            connection_string = (
                f"DRIVER={{ODBC Driver 17 for SQL Server}};"
                f"SERVER={self.db_server},{self.db_port};"
                f"DATABASE={self.db_name};"
                f"Trusted_Connection=yes;"
            )
        else:
            # SQL Server Authentication
            connection_string = (
                f"DRIVER={{ODBC Driver 17 for SQL Server}};"
                f"SERVER={self.db_server},{self.db_port};"
                f"DATABASE={self.db_name};"
                f"UID={self.db_user};"
                f"PWD={self.db_password};"
            )
        
        return f"mssql+pyodbc:///?odbc_connect={quote_plus(connection_string)}"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    
    Using lru_cache ensures we only load settings once.
    """
    return Settings()
