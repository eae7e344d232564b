# renderer.py

from typing import NewType

from jinja2 import Environment, StrictUndefined

from config import Config
from escaping import Context, escape
from extractor import Receipt

Document = NewType("Document", str)

RECEIPT_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Facture {{ receipt.sale_id }}</title>
<style>
@page { size: {{ paper_width }}mm auto; margin: 0; }
body { width: {{ paper_width }}mm; font-family: monospace; font-size: 12px; padding: 6px; margin: 0; color: #111; }
.center { text-align: center; }
.bold { font-weight: bold; }
table { width: 100%; border-collapse: collapse; margin: 8px 0; }
th, td { padding: 2px 0; text-align: left; }
.line { border-top: 1px dashed #000; margin: 8px 0; }
</style>
</head>
<body>
<div class="center bold">{{ receipt.vendor_name }}</div>
<div class="center">{{ receipt.vendor_address }}</div>
<div class="center">Tél: {{ receipt.vendor_phone }}</div>
<div class="line"></div>
<div>Facture N°: {{ receipt.sale_id }}</div>
<div>Date: {{ receipt.created_at }}</div>
<div>Client: {{ receipt.customer_name }}</div>
{% if receipt.seller_name %}<div>Vendeur: {{ receipt.seller_name }}</div>
{% endif %}{% if receipt.payment_method %}<div>Paiement: {{ receipt.payment_method }}</div>
{% endif %}<div class="line"></div>
<table>
<thead><tr><th>Produit</th><th>Qté</th><th>Prix</th><th>Total</th></tr></thead>
<tbody>
{% for line in receipt.lines %}<tr class="item"><td>{{ line.product_name }}</td><td>{{ line.quantity }}</td><td>{{ line.unit_price|money }}</td><td>{{ line.line_total|money }}</td></tr>
{% else %}<tr class="empty"><td colspan="4">Aucun article</td></tr>
{% endfor %}</tbody>
</table>
<div class="line"></div>
<div class="bold">TOTAL: {{ receipt.total|money(currency_long) }}</div>
<div>Montant reçu: {{ receipt.amount_received|money }}</div>
<div>Monnaie: {{ receipt.change_due|money }}</div>
<div class="line"></div>
<div class="center">{{ footer }}</div>
</body>
</html>
"""


def format_amount(value: float) -> str:
    # Rounded to whole units; "-0" never shows up on a receipt.
    text = format(value, ".0f")
    return "0" if text == "-0" else text


def _escape_markup(value):
    return escape(value, Context.MARKUP)


def _build_environment(config) -> Environment:
    env = Environment(
        autoescape=True,
        finalize=_escape_markup,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )
    env.filters["money"] = lambda value, suffix=config.CURRENCY: f"{format_amount(value)} {suffix}"
    return env


_environment = _build_environment(Config)
_template = _environment.from_string(RECEIPT_TEMPLATE)


def render(receipt: Receipt, config=Config) -> Document:
    """Render a receipt to a complete, self-contained HTML document."""
    template = _template
    if config is not Config:
        template = _build_environment(config).from_string(RECEIPT_TEMPLATE)
    return Document(template.render(
        receipt=receipt,
        paper_width=config.PAPER_WIDTH_MM,
        currency_long=config.CURRENCY_LONG,
        footer=config.FOOTER,
    ))
