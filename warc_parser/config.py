from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "WARC Parser"
    api_path: str = "/yacy/grid/parser/parser.json"
    log_level: str = "INFO"

    request_timeout: int = 30
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/122.0.0.0 Safari/537.36"
    )
    # sourceurl=file:///... reads archives from the local file system
    allow_file_urls: bool = True

    # Sources whose name ends with one of these are gunzipped before scanning
    compressed_suffixes: list[str] = [".gz"]
    read_block_size: int = 8192
    timezone_offset: int = 0

    # Asset store: "local" or "supabase"
    asset_backend: str = "local"
    base_storage_dir: str = "./data"

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""        # anon/service_role key
    supabase_bucket: str = "archives"

    # "package.module:factory" entries, each returning a DocumentParser
    parser_plugins: list[str] = []
    projection_plugin: str = ""


settings = Settings()
