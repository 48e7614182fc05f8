import pytest

from app.services.image_update.csv_codec import (
    CSV_HEADERS,
    ImageUpdateCSVRow,
    count_rows,
    decode_rows,
    encode_rows,
    parse_csv_line,
)
from app.services.image_update.errors import EmptyCSVError, ImageUpdateValidationError


def test_encode_rows_writes_header_and_raw_values():
    rows = [
        ImageUpdateCSVRow("gid://shopify/Product/1", "red-shirt", "gid://shopify/ProductImage/11", "Summer", ""),
        ImageUpdateCSVRow("gid://shopify/Product/1", "red-shirt", "", "Summer", "https://x.test/a.jpg"),
    ]

    text = encode_rows(rows)

    lines = text.split("\n")
    assert lines[0] == ",".join(CSV_HEADERS)
    assert lines[1] == "gid://shopify/Product/1,red-shirt,gid://shopify/ProductImage/11,Summer,"
    assert lines[2] == "gid://shopify/Product/1,red-shirt,,Summer,https://x.test/a.jpg"
    assert not text.endswith("\n")


def test_encode_rows_with_no_rows_is_header_only():
    assert encode_rows([]) == "product_id,product_handle,current_image_id,collection_name,new_image_url"


def test_parse_csv_line_handles_quotes_and_trims():
    assert parse_csv_line('p1, "a, b" ,x') == ["p1", "a, b", "x"]
    assert parse_csv_line("a,,c,") == ["a", "", "c", ""]
    # 引号本身不保留
    assert parse_csv_line('"p1","h"') == ["p1", "h"]


def test_decode_rows_ignores_blank_lines_and_pads_missing_fields():
    text = (
        "product_id,product_handle,current_image_id,collection_name,new_image_url\n"
        "\n"
        "p1,h1,img1,Summer,https://x.test/1.jpg\r\n"
        "   \n"
        "p2,h2\n"
    )

    rows = decode_rows(text)

    assert rows == [
        ImageUpdateCSVRow("p1", "h1", "img1", "Summer", "https://x.test/1.jpg"),
        ImageUpdateCSVRow("p2", "h2", "", "", ""),
    ]


def test_decode_rows_uses_fixed_column_order_not_header_names():
    text = "a,b,c,d,e\np1,h1,img,Coll,https://x.test/1.jpg"
    row = decode_rows(text)[0]
    assert row.product_id == "p1"
    assert row.new_image_url == "https://x.test/1.jpg"


def test_decode_rows_header_only_returns_empty_list():
    assert decode_rows(",".join(CSV_HEADERS) + "\n") == []


@pytest.mark.parametrize("text", ["", "\n\n", "  \n \r\n"])
def test_decode_rows_empty_input_raises(text):
    with pytest.raises(EmptyCSVError) as exc:
        decode_rows(text)
    assert str(exc.value) == "CSV file is empty"
    assert isinstance(exc.value, ImageUpdateValidationError)


def test_count_rows_is_non_blank_lines_minus_header():
    assert count_rows("") == 0
    assert count_rows("header") == 0
    assert count_rows("header\n\nr1\nr2\n \n") == 2


def test_round_trip_keeps_rows():
    rows = [
        ImageUpdateCSVRow("p1", "h1", "img1", "Summer", ""),
        ImageUpdateCSVRow("p1", "h1", "", "Summer", "https://x.test/2.jpg"),
    ]
    assert decode_rows(encode_rows(rows)) == rows
