"""
Test CSV Loader

Unit tests for CSV parsing, enrichment, and month loading.
"""

import tempfile
from pathlib import Path

import polars as pl
import pytest

from core.csv_parser import CSVParser


@pytest.fixture
def parser():
    return CSVParser()


@pytest.fixture
def orders_csv_bytes():
    return b"""order_id,date_time,customer_name,associate,channel,status
1001,"Aug 1, 2025, 5:24 PM PDT",Ann Lee,Sam,In Store,Completed
1002,"Aug 2, 2025, 10:05 AM PDT",Bo Chen,Kim,Online,Completed
1003,"Aug 3, 2025, 1:15 PM PDT",Cy Diaz,Sam,In Store,Returned"""


@pytest.fixture
def line_items_csv_bytes():
    return b"""order_id,product_name,sku,color,size,quantity,discounted_price
1001,Trucker Jacket - Brown - M,TJ-BR-M,Brown,M,1,250.00
1001,Canvas Tote - Natural,CT-NA,Natural,,2,90.00
1002,Trucker Jacket - Brown - L,TJ-BR-L,Brown,L,1,250.00
1004,Wool Cap - Black,WC-BL,Black,,1,35.00"""


@pytest.fixture
def sample_csv_file(orders_csv_bytes):
    with tempfile.NamedTemporaryFile(mode="wb", suffix=".csv", delete=False) as f:
        f.write(orders_csv_bytes)
        return Path(f.name)


class TestCSVParser:
    def test_parse_bytes(self, parser, orders_csv_bytes):
        """Test parsing CSV from bytes."""
        df = parser.parse_bytes(orders_csv_bytes)

        assert len(df) == 3
        assert len(df.columns) == 6
        assert "order_id" in df.columns
        assert "date_time" in df.columns

    def test_parse_file(self, parser, sample_csv_file):
        """Test parsing CSV from file."""
        df = parser.parse_file(sample_csv_file)

        assert len(df) == 3
        assert len(df.columns) == 6

    def test_parse_file_row_limit(self, parser, sample_csv_file):
        df = parser.parse_file(sample_csv_file, n_rows=2)

        assert len(df) == 2

    def test_encoding_detection(self, parser, sample_csv_file):
        """Test encoding detection."""
        encoding = parser.detect_encoding(sample_csv_file)

        assert encoding is not None
        assert encoding.lower() in ["utf-8", "ascii", "utf-8-sig"]

    def test_latin1_bytes_are_decoded(self, parser):
        data = "name,price\nCaf\xe9 Mug,12\n".encode("latin-1")

        df = parser.parse_bytes(data)

        assert len(df) == 1
        assert df["name"][0].startswith("Caf")

    def test_every_column_is_text(self, parser):
        """CSV values stay strings; numeric coercion happens downstream."""
        csv_data = b"""int_col,float_col,str_col
1,1.5,hello
2,2.5,world"""

        df = parser.parse_bytes(csv_data)

        assert all(dtype in (pl.Utf8, pl.String) for dtype in df.dtypes)
        assert df["int_col"].to_list() == ["1", "2"]

    def test_handles_nulls(self, parser):
        """Test handling of null values."""
        csv_data = b"""a,b,c
1,hello,
2,,world
,3,test"""

        df = parser.parse_bytes(csv_data)

        assert df["a"].null_count() == 1
        assert df["b"].null_count() == 1
        assert df["c"].null_count() == 1

    def test_handles_quoted_commas(self, parser):
        csv_data = b'''name,description
"Jacket, Waxed","Description with ""quotes"""
"Tote","Normal text"'''

        df = parser.parse_bytes(csv_data)

        assert len(df) == 2
        assert "Jacket, Waxed" in df["name"].to_list()

    def test_empty_input(self, parser):
        assert parser.parse_bytes(b"").is_empty()
        assert parser.parse_bytes(b"   \n").is_empty()

    def test_to_rows_drops_null_cells(self, parser):
        df = parser.parse_bytes(b"a,b\n1,\n2,x")

        rows = parser.to_rows(df)

        assert rows == [{"a": "1"}, {"a": "2", "b": "x"}]

    def test_session_id_generation(self, parser):
        """Test unique session ID generation."""
        id1 = parser.generate_session_id("test.csv")
        id2 = parser.generate_session_id("test.csv")

        # Should be different due to timestamp
        assert id1 != id2
        assert len(id1) == 16

    def test_save_and_load(self, parser, orders_csv_bytes, tmp_path):
        """Test saving and loading DataFrame."""
        parser.settings.upload_dir = str(tmp_path)

        df = parser.parse_bytes(orders_csv_bytes)
        path = parser.save_dataframe(df, "test_session")
        assert path.exists()

        loaded_df = parser.load_dataframe("test_session")
        assert len(loaded_df) == len(df)
        assert loaded_df.columns == df.columns

        assert parser.delete_session("test_session") is True
        assert parser.delete_session("test_session") is False
        with pytest.raises(FileNotFoundError):
            parser.load_dataframe("test_session")


class TestEnrichment:
    def test_line_items_inherit_order_fields(self, parser, orders_csv_bytes, line_items_csv_bytes):
        orders = parser.parse_bytes(orders_csv_bytes)
        items = parser.parse_bytes(line_items_csv_bytes)

        rows = parser.to_rows(parser.enrich_line_items(orders, items))
        by_sku = {row["sku"]: row for row in rows}

        assert len(rows) == 4
        assert by_sku["TJ-BR-M"]["customer_name"] == "Ann Lee"
        assert by_sku["CT-NA"]["associate"] == "Sam"
        assert by_sku["TJ-BR-L"]["channel"] == "Online"
        assert by_sku["TJ-BR-L"]["date_time"] == "Aug 2, 2025, 10:05 AM PDT"

    def test_unmatched_line_items_are_kept(self, parser, orders_csv_bytes, line_items_csv_bytes):
        orders = parser.parse_bytes(orders_csv_bytes)
        items = parser.parse_bytes(line_items_csv_bytes)

        rows = parser.to_rows(parser.enrich_line_items(orders, items))
        orphan = next(row for row in rows if row["order_id"] == "1004")

        assert orphan["product_name"] == "Wool Cap - Black"
        assert "customer_name" not in orphan
        assert parser.count_matched(orders, items) == 3

    def test_order_value_overrides_line_item_value(self, parser, orders_csv_bytes):
        orders = parser.parse_bytes(orders_csv_bytes)
        items = parser.parse_bytes(b"order_id,product_name,status\n1003,Tote,Open\n9999,Cap,Open")

        rows = parser.to_rows(parser.enrich_line_items(orders, items))
        status = {row["order_id"]: row["status"] for row in rows}

        assert status == {"1003": "Returned", "9999": "Open"}

    def test_no_orders_returns_line_items_unchanged(self, parser, line_items_csv_bytes):
        items = parser.parse_bytes(line_items_csv_bytes)

        enriched = parser.enrich_line_items(pl.DataFrame(), items)

        assert enriched.columns == items.columns
        assert len(enriched) == len(items)


class TestMonthLoading:
    def test_month_directory_layout(self, parser, tmp_path):
        parser.settings.data.data_dir = str(tmp_path)

        assert parser.month_directory(2025, 8) == tmp_path / "2025" / "2025-08"

    def test_load_month(self, parser, tmp_path, orders_csv_bytes, line_items_csv_bytes):
        parser.settings.data.data_dir = str(tmp_path)
        month_dir = tmp_path / "2025" / "2025-08"
        month_dir.mkdir(parents=True)
        (month_dir / "2025-08_orders.csv").write_bytes(orders_csv_bytes)
        (month_dir / "2025-08_line-items.csv").write_bytes(line_items_csv_bytes)

        orders, items = parser.load_month(2025, 8)

        assert len(orders) == 3
        assert len(items) == 4

    def test_missing_month_is_empty(self, parser, tmp_path):
        parser.settings.data.data_dir = str(tmp_path)

        orders, items = parser.load_month(2024, 1)

        assert orders.is_empty()
        assert items.is_empty()


class TestCatalogRows:
    def test_normalize_catalog_row(self, parser):
        product = parser.normalize_catalog_row({
            "id": "P-1",
            "product_name": " Waxed Jacket ",
            "price": "$189.00",
            "variation_color_value": "Olive",
            "categories": '["Outerwear", "Jackets"]',
            "keywords": "waxed canvas",
        })

        assert product["product_id"] == "P-1"
        assert product["title"] == "Waxed Jacket"
        assert product["price"] == 189.0
        assert product["color"] == "Olive"
        assert product["size"] == ""
        assert product["categories"] == ["Outerwear", "Jackets"]
        assert product["keywords"] == "waxed canvas"

    def test_malformed_json_kept_as_text(self, parser):
        product = parser.normalize_catalog_row({"title": "Tote", "categories": "[Bags"})

        assert product["categories"] == "[Bags"
        assert product["price"] == 0

    def test_missing_id_falls_back_to_row_position(self, parser):
        rows = [{"title": "Canvas Tote"}, {"title": "Canvas Cap"}]

        products = [parser.normalize_catalog_row(row, i) for i, row in enumerate(rows)]

        assert [p["product_id"] for p in products] == ["row-0", "row-1"]
        assert parser.normalize_catalog_row({"title": "Tote"})["product_id"] == ""
