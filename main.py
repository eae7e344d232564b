# main.py
from flask import Blueprint, Flask, Response, current_app, jsonify, request

from bridge import BrowserHostBridge
from config import Config, configure_logging
from errors import NoActiveSurface, PrintError
from printer import close_print_surface, generate_html, open_path, print_receipt
from surface import PrintSurfaceController

printer_bp = Blueprint("printer", __name__)


def _controller():
    return current_app.extensions["print_surface"]


@printer_bp.route("/health", methods=["GET"])
def health_check():
    return jsonify({"status": "ok"})


@printer_bp.route("/print/receipt", methods=["POST"])
def handle_print():
    invoice_data = request.get_json(silent=True)
    try:
        message = print_receipt(_controller(), invoice_data)
        return jsonify({"status": "success", "message": message})
    except PrintError as e:
        current_app.logger.error("Print failed: %s: %s", e.kind, e.message)
        return jsonify(e.to_dict()), 500
    except Exception as e:
        current_app.logger.exception("Print failed")
        return jsonify({"status": "error", "message": str(e)}), 500


@printer_bp.route("/print/close", methods=["POST"])
def handle_close():
    data = request.get_json(silent=True)
    token = data.get("surface") if isinstance(data, dict) else None
    if token is not None and not isinstance(token, str):
        return jsonify({"status": "error", "message": "Invalid surface"}), 400
    try:
        close_print_surface(_controller(), token)
        return jsonify({"status": "success"})
    except NoActiveSurface as e:
        return jsonify(e.to_dict()), 404
    except PrintError as e:
        current_app.logger.error("Closing print surface failed: %s", e.message)
        return jsonify(e.to_dict()), 500


@printer_bp.route("/print/preview", methods=["POST"])
def handle_preview():
    try:
        html = generate_html(request.get_json(silent=True))
    except Exception as e:
        current_app.logger.exception("Preview failed")
        return jsonify({"status": "error", "message": str(e)}), 500
    return Response(html, mimetype="text/html")


@printer_bp.route("/folder/open", methods=["POST"])
def handle_open_folder():
    data = request.get_json(silent=True) or {}
    path = data.get("path") if isinstance(data, dict) else None
    if not isinstance(path, str) or not path:
        return jsonify({"status": "error", "message": "Missing path"}), 400
    try:
        open_path(current_app.extensions["host_bridge"], path)
        return jsonify({"status": "success"})
    except PrintError as e:
        current_app.logger.error("Open failed: %s", e.message)
        return jsonify(e.to_dict()), 500


def create_app(bridge=None, config=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config)
    configure_logging(app.logger, config.LOG_LEVEL)

    if bridge is None:
        bridge = BrowserHostBridge(base_url=f"http://{config.HOST}:{config.PORT}")
    app.extensions["host_bridge"] = bridge
    app.extensions["print_surface"] = PrintSurfaceController(bridge, config)

    app.register_blueprint(printer_bp)
    if getattr(bridge, "blueprint", None) is not None:
        app.register_blueprint(bridge.blueprint)
    return app


if __name__ == "__main__":
    app = create_app()
    app.run(host=Config.HOST, port=Config.PORT, threaded=True)
