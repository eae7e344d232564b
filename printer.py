# printer.py

import logging

from extractor import extract
from renderer import render

logger = logging.getLogger(__name__)


def generate_html(invoice_data):
    return render(extract(invoice_data))


def print_receipt(controller, invoice_data):
    receipt = extract(invoice_data)
    logger.info("Printing invoice %s (%d lines)", receipt.sale_id, len(receipt.lines))
    return controller.print_document(render(receipt))


def close_print_surface(controller, token=None):
    controller.close_print_surface(token)


def open_path(bridge, path):
    logger.info("Opening %s", path)
    bridge.open_path(path)
