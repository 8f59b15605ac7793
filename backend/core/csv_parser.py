"""
CSV Loader

Uses Polars to read the scraper's CSV exports. Every column is read as a
string (CSV has no native types); numeric coercion happens downstream in the
calculation layer. Handles monthly orders/line-items pairs, the
orders-to-line-items join, and catalog rows for pattern discovery.
"""

import hashlib
import io
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

import chardet
import polars as pl

from config import get_settings
from core.fields import parse_json_field, to_number
from core.logging_config import data_logger as logger


# Order-level columns copied onto each line item by the enrichment join
ORDER_ENRICHMENT_COLUMNS = [
    "date_time",
    "customer_name",
    "associate",
    "channel",
    "status",
    "fulfillment_location",
]


class CSVParser:
    """CSV loader using Polars."""

    def __init__(self):
        self.settings = get_settings()

    def detect_encoding(self, file_path: Union[str, Path]) -> str:
        """Detect file encoding using chardet."""
        with open(file_path, "rb") as f:
            # Read first 100KB for detection
            raw_data = f.read(102400)

        return self.detect_encoding_from_bytes(raw_data)

    def detect_encoding_from_bytes(self, data: bytes) -> str:
        """Detect encoding from bytes."""
        # Use first 100KB for detection
        sample = data[:102400]
        result = chardet.detect(sample)
        encoding = result.get("encoding", "utf-8")
        return encoding or "utf-8"

    def parse_file(
        self,
        file_path: Union[str, Path],
        encoding: Optional[str] = None,
        n_rows: Optional[int] = None,
    ) -> pl.DataFrame:
        """
        Parse a CSV file with every column typed as a string.

        Args:
            file_path: Path to CSV file
            encoding: File encoding (auto-detected if None)
            n_rows: Limit number of rows to read

        Returns:
            Polars DataFrame
        """
        with open(file_path, "rb") as f:
            data = f.read()

        df = self.parse_bytes(data, filename=str(file_path), encoding=encoding)
        if n_rows is not None:
            df = df.head(n_rows)

        logger.info(f"Loaded {len(df)} rows from {file_path}")
        return df

    def parse_bytes(
        self,
        data: bytes,
        filename: str = "upload.csv",
        encoding: Optional[str] = None,
    ) -> pl.DataFrame:
        """
        Parse CSV from bytes.

        Args:
            data: Raw CSV bytes
            filename: Original filename (for logging)
            encoding: Encoding override (auto-detected if None)

        Returns:
            Polars DataFrame with string columns
        """
        if encoding is None:
            encoding = self.detect_encoding_from_bytes(data)

        # Decode bytes to string
        try:
            text = data.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            # Fallback to latin-1 which accepts any byte
            logger.warning(f"Could not decode {filename} as {encoding}, using latin-1")
            text = data.decode("latin-1")

        # Strip a UTF-8 BOM left in place by some encodings
        text = text.lstrip("﻿")

        if not text.strip():
            return pl.DataFrame()

        df = pl.read_csv(
            io.StringIO(text),
            infer_schema_length=0,
            ignore_errors=True,
            truncate_ragged_lines=True,
        )

        return df

    def to_rows(self, df: pl.DataFrame) -> list[dict[str, Any]]:
        """Convert a DataFrame to row mappings, dropping null cells."""
        return [
            {k: v for k, v in row.items() if v is not None}
            for row in df.iter_rows(named=True)
        ]

    def enrich_line_items(
        self,
        orders: pl.DataFrame,
        line_items: pl.DataFrame,
        key: Optional[str] = None,
    ) -> pl.DataFrame:
        """
        Join line items with their order so each line inherits order fields.

        Line items whose order is missing keep their own columns. Order
        columns already present on the line item are overwritten by the
        order's value when the order has one.
        """
        key = key or self.settings.data.join_key

        if line_items.is_empty() or key not in line_items.columns:
            return line_items
        if orders.is_empty() or key not in orders.columns:
            logger.warning("No orders to enrich line items with")
            return line_items

        order_cols = [c for c in ORDER_ENRICHMENT_COLUMNS if c in orders.columns]
        order_fields = orders.select([key, *order_cols]).unique(subset=[key], keep="first")
        renamed = order_fields.rename({c: f"{c}__order" for c in order_cols})

        joined = line_items.join(renamed, on=key, how="left")

        updates = []
        for col in order_cols:
            order_col = pl.col(f"{col}__order")
            if col in line_items.columns:
                updates.append(pl.coalesce([order_col, pl.col(col)]).alias(col))
            else:
                updates.append(order_col.alias(col))

        enriched = joined.with_columns(updates).drop([f"{c}__order" for c in order_cols])

        matched = self.count_matched(orders, line_items, key)
        logger.info(f"Enriched {matched}/{len(line_items)} line items with order data")
        return enriched

    def count_matched(
        self,
        orders: pl.DataFrame,
        line_items: pl.DataFrame,
        key: Optional[str] = None,
    ) -> int:
        """Number of line items whose order is present."""
        key = key or self.settings.data.join_key
        if key not in orders.columns or key not in line_items.columns:
            return 0
        return line_items.join(orders.select(key).unique(), on=key, how="semi").height

    def month_directory(self, year: Union[int, str], month: Union[int, str]) -> Path:
        """Directory holding one month of exports: {data_dir}/{YYYY}/{YYYY-MM}."""
        yyyy = str(year)
        mm = str(month).zfill(2)
        return Path(self.settings.data.data_dir) / yyyy / f"{yyyy}-{mm}"

    def load_month(
        self,
        year: Union[int, str],
        month: Union[int, str],
    ) -> tuple[pl.DataFrame, pl.DataFrame]:
        """
        Load the orders and line items exports of one month.

        Missing files degrade to empty frames.
        """
        directory = self.month_directory(year, month)
        orders = self._load_by_suffix(directory, self.settings.data.orders_suffix)
        line_items = self._load_by_suffix(directory, self.settings.data.line_items_suffix)
        return orders, line_items

    def _load_by_suffix(self, directory: Path, suffix: str) -> pl.DataFrame:
        if not directory.exists():
            logger.warning(f"Month directory {directory} does not exist")
            return pl.DataFrame()

        frames = [
            self.parse_file(path)
            for path in sorted(directory.glob(f"*{suffix}"))
        ]
        if not frames:
            logger.warning(f"No *{suffix} file in {directory}")
            return pl.DataFrame()

        return pl.concat(frames, how="diagonal")

    def normalize_catalog_row(self, row: dict[str, Any], index: Optional[int] = None) -> dict[str, Any]:
        """
        Shape a catalog CSV row into a discovery product record.

        JSON-array cells (categories, keywords) are parsed; malformed JSON is
        kept as plain text. Rows without a product id fall back to the row
        position `index` when given.
        """
        product_id = str(row.get("product_id") or row.get("id") or "").strip()
        if not product_id and index is not None:
            product_id = f"row-{index}"

        product = {
            "product_id": product_id,
            "title": str(row.get("title") or row.get("product_name") or "").strip(),
            "description": str(row.get("description") or "").strip(),
            "price": to_number(row.get("price")),
            "color": str(row.get("color") or row.get("variation_color_value") or "").strip(),
            "size": str(row.get("size") or row.get("variation_size_value") or "").strip(),
        }

        for field in ("categories", "keywords"):
            raw = row.get(field)
            if raw is None:
                continue
            parsed = parse_json_field(raw, default=raw) if str(raw).lstrip().startswith(("[", "{")) else raw
            product[field] = parsed

        return product

    def save_dataframe(
        self,
        df: pl.DataFrame,
        session_id: str,
    ) -> Path:
        """
        Save DataFrame to disk for session persistence.

        Uses Parquet format for fast loading and compression.
        """
        upload_dir = Path(self.settings.upload_dir)
        upload_dir.mkdir(parents=True, exist_ok=True)

        file_path = upload_dir / f"{session_id}.parquet"
        df.write_parquet(file_path, compression="zstd")

        return file_path

    def load_dataframe(self, session_id: str) -> pl.DataFrame:
        """Load DataFrame from session storage."""
        upload_dir = Path(self.settings.upload_dir)
        file_path = upload_dir / f"{session_id}.parquet"

        if not file_path.exists():
            raise FileNotFoundError(f"Session {session_id} not found")

        return pl.read_parquet(file_path)

    def load_rows(self, session_id: str) -> list[dict[str, Any]]:
        """Load a session dataset as row mappings."""
        return self.to_rows(self.load_dataframe(session_id))

    def generate_session_id(self, filename: str) -> str:
        """
        Generate unique session ID based on filename and timestamp.

        Args:
            filename: Original filename

        Returns:
            Unique session ID
        """
        timestamp = datetime.now().isoformat()
        content = f"{filename}_{timestamp}"
        return hashlib.sha256(content.encode()).hexdigest()[:16]

    def delete_session(self, session_id: str) -> bool:
        """
        Delete session data.

        Returns:
            True if deleted, False if not found
        """
        upload_dir = Path(self.settings.upload_dir)
        file_path = upload_dir / f"{session_id}.parquet"

        if file_path.exists():
            file_path.unlink()
            return True
        return False


# Global parser instance
csv_parser = CSVParser()
