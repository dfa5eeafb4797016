from datetime import date
from decimal import Decimal

import pytest

from app.ingest.errors import CSVStructureError, MalformedCSV
from app.ingest.validate import validate_csv
from conftest import make_csv


def test_valid_rows_are_normalized():
    result = validate_csv(make_csv(" 1 , Lamp ,  home , 10.5 , 2024-01-05 ", "2,Mug,kitchen,20,2024-01-10"))
    assert result.total_count == 2
    first, second = result.records
    assert (first.source_id, first.name, first.category) == (1, "Lamp", "home")
    assert first.price == Decimal("10.50")
    assert first.create_date == date(2024, 1, 5)
    assert second.price == Decimal("20.00")


def test_total_count_includes_rejected_rows():
    payload = make_csv(
        "1,Lamp,home,10.00,2024-01-05",
        "2,Mug,kitchen",
        "x,Mug,kitchen,20.00,2024-01-10",
        "3, ,kitchen,20.00,2024-01-10",
        "4,Mug,,20.00,2024-01-10",
        "5,Mug,kitchen,0,2024-01-10",
        "6,Mug,kitchen,-3,2024-01-10",
        "7,Mug,kitchen,abc,2024-01-10",
        "8,Mug,kitchen,NaN,2024-01-10",
        "9,Mug,kitchen,0.001,2024-01-10",
        "10,Mug,kitchen,20.00,2024-02-30",
        "11,Mug,kitchen,20.00,10/01/2024",
        "12,Mug,kitchen,20.00,2024-1-10",
        "13,Rug,home,30.00,2024-02-01,extra",
    )
    result = validate_csv(payload)
    assert result.total_count == 14
    assert [record.source_id for record in result.records] == [1, 13]


def test_header_is_never_validated():
    result = validate_csv(b"not,a,real,header\n1,Lamp,home,10.00,2024-01-05\n")
    assert result.total_count == 1
    assert len(result.records) == 1


def test_blank_lines_are_skipped():
    result = validate_csv(b"id,name,category,price,create_date\n\n1,Lamp,home,10.00,2024-01-05\n\n")
    assert result.total_count == 1


def test_quoted_fields_and_bom():
    payload = "\ufeffid,name,category,price,create_date\n1,\"Lamp, brass\",home,10.00,2024-01-05\n".encode()
    result = validate_csv(payload)
    assert result.records[0].name == "Lamp, brass"


def test_line_numbers_follow_the_file():
    result = validate_csv(make_csv("bad", "2,Mug,kitchen,20.00,2024-01-10"))
    assert result.records[0].line == 3


@pytest.mark.parametrize(
    "payload",
    [
        b"",
        b"id,name,category,price,create_date\n",
        b"\n\n",
        b"\xff\xfe\x00garbage",
        b'id,name\n1,"unterminated\n',
        b'id,name\n1,"a"b,c\n',
    ],
)
def test_structurally_unusable_payloads(payload):
    with pytest.raises(MalformedCSV) as excinfo:
        validate_csv(payload)
    assert isinstance(excinfo.value, CSVStructureError)


def test_rows_of_empty_fields_are_counted_and_rejected():
    result = validate_csv(make_csv("1,Lamp,home,10.00,2024-01-05", ",,,,", " , , , , "))
    assert result.total_count == 3
    assert [record.source_id for record in result.records] == [1]


def test_single_empty_field_row_is_still_a_data_row():
    result = validate_csv(make_csv(",,,,"))
    assert result.total_count == 1
    assert result.records == []
