import re

import pytest

from config import Config
from extractor import LineItem, Receipt, extract
from renderer import format_amount, render


def _rows(document, css_class):
    return re.findall(rf'<tr class="{css_class}">(.*?)</tr>', document)


def _cells(row):
    return re.findall(r"<td[^>]*>(.*?)</td>", row)


def test_sample_document(sample_payload):
    document = render(extract(sample_payload))

    rows = _rows(document, "item")
    assert len(rows) == 1
    assert _cells(rows[0]) == ["Paracetamol", "2", "150 F", "300 F"]
    assert "TOTAL: 1000 F CFA" in document
    assert "Montant reçu: 1200 F" in document
    assert "Monnaie: 200 F" in document
    assert "Facture N°: 7" in document
    assert "Client: Jane" in document
    assert '<div class="center bold">Acme</div>' in document


def test_sections_in_order(sample_payload):
    document = render(extract(sample_payload))
    markers = ["Acme", "Facture N°", "Date:", "Client:", "<table>", "TOTAL:", "Montant reçu", "Monnaie", "Meilleure Santé !"]
    positions = [document.index(marker) for marker in markers]
    assert positions == sorted(positions)


def test_no_items_placeholder():
    document = render(extract({"sale": {"total": 1000, "amount_received": 1500}, "items": []}))

    assert _rows(document, "item") == []
    assert len(_rows(document, "empty")) == 1
    assert "Aucun article" in document
    assert "TOTAL: 1000 F CFA" in document
    assert "Montant reçu: 1500 F" in document
    assert "Monnaie: 500 F" in document


def test_missing_items_placeholder():
    document = render(extract({"items": "nope"}))
    assert document.count("Aucun article") == 1


def test_rows_follow_input_order():
    receipt = Receipt(vendor_name="V", lines=(LineItem("B", 1, 5), LineItem("A", 2, 7.5)))
    rows = _rows(render(receipt), "item")
    assert [_cells(row) for row in rows] == [["B", "1", "5 F", "5 F"], ["A", "2", "8 F", "15 F"]]


def test_values_are_markup_escaped():
    receipt = Receipt(
        vendor_name="<script>alert(1)</script>",
        customer_name='"Jane" & Co',
        lines=(LineItem("Sirop `x` ${1+1}\nfort", 1, 1),),
    )
    document = render(receipt)

    assert "<script>" not in document
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in document
    assert "Client: &#34;Jane&#34; &amp; Co" in document
    assert "Sirop &#96;x&#96; &#36;{1+1}\nfort" in document
    assert "`" not in document
    assert "$" not in document


def test_document_is_self_contained(sample_payload):
    document = render(extract(sample_payload))

    assert document.startswith("<!DOCTYPE html>")
    assert document.rstrip().endswith("</html>")
    assert "<style>" in document
    for reference in ("<link", "<script", "src=", "href=", "http://", "https://", "@import"):
        assert reference not in document


def test_optional_metadata_lines():
    assert "Vendeur" not in render(Receipt(vendor_name="V"))
    document = render(Receipt(vendor_name="V", seller_name="Awa", payment_method="cash"))
    assert "Vendeur: Awa" in document
    assert "Paiement: cash" in document


def test_render_is_deterministic(sample_payload):
    assert render(extract(sample_payload)) == render(extract(sample_payload))


@pytest.mark.parametrize("value,expected", [
    (0, "0"),
    (150.0, "150"),
    (149.6, "150"),
    (2.5, "2"),
    (1234567.0, "1234567"),
    (-0.2, "0"),
])
def test_format_amount(value, expected):
    assert format_amount(value) == expected


def test_custom_config():
    class Shop(Config):
        CURRENCY = "EUR"
        CURRENCY_LONG = "EUR TTC"
        FOOTER = "Merci"
        PAPER_WIDTH_MM = 80

    document = render(Receipt(vendor_name="V", total=12, amount_received=12), config=Shop)
    assert "TOTAL: 12 EUR TTC" in document
    assert "Monnaie: 0 EUR" in document
    assert "Merci" in document
    assert "width: 80mm" in document
