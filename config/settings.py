"""Application settings loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Pivot labels
    grand_total_label: str = "Grand Total"
    blank_label: str = "(Blank)"

    # Data source
    max_rows: int = 0  # 0 = unlimited

    # CSV export
    csv_chunk_size: int = 2000  # rows rendered between cooperative yields

    # Excel export
    default_workbook_name: str = "Report"
    row_header_width: float = 20
    data_column_width: float = 15


settings = Settings()
