# app.py
import io
import logging
import math
import re

from flask import Flask, request, jsonify, send_file, send_from_directory, abort
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from config import Config
from models import Invoice, Customer, Settings
from pdf_service import render_invoice_pdf, pdf_filename
from state import AppState, NotFoundError, default_settings
from storage import Storage, StorageError

logger = logging.getLogger(__name__)

_ID_RE = re.compile(r"[+-]?\d+")


# -----------------------------
# Helpers
# -----------------------------
def _parse_id(raw: str, what: str) -> int:
    if not _ID_RE.fullmatch(raw or ""):
        abort(400, description=f"Invalid {what} ID")
    return int(raw)


def _decode_body(record_cls):
    data = request.get_json(force=True, silent=True)
    if data is None:
        abort(400, description="Invalid JSON: request body is not valid JSON")
    try:
        return record_cls.from_dict(data)
    except ValueError as e:
        abort(400, description=f"Invalid JSON: {e}")


def get_state(app: Flask) -> AppState:
    return app.extensions["invoice_state"]


# -----------------------------
# App factory
# -----------------------------
def create_app(config=None):
    app = Flask(__name__, static_folder=None)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    CORS(
        app,
        origins="*",
        methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers="*",
        send_wildcard=True,
    )

    storage = Storage(app.config["DATA_DIR"])
    state = AppState.from_storage(
        storage,
        default_settings=default_settings(app.config),
        invoice_number_width=app.config["INVOICE_NUMBER_WIDTH"],
    )
    app.extensions["invoice_state"] = state

    # -----------------------------
    # Errors
    # -----------------------------
    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        if request.path.startswith("/api/"):
            return jsonify({"error": e.description}), e.code
        return e

    @app.errorhandler(NotFoundError)
    def handle_not_found(e: NotFoundError):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(StorageError)
    def handle_storage_error(e: StorageError):
        logger.error("Persisting state failed: %s", e)
        return jsonify({"error": str(e)}), 500

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    # -----------------------------
    # Invoices
    # -----------------------------
    @app.route("/api/invoices", methods=["GET"])
    def invoices_list():
        return jsonify([inv.to_dict() for inv in state.list_invoices()])

    @app.route("/api/invoices", methods=["POST"])
    def invoice_create():
        inv = _decode_body(Invoice)
        inv.calculate_totals()
        if not math.isfinite(inv.total):
            abort(400, description="Invalid JSON: invoice amounts are out of range")
        created = state.create_invoice(inv)
        return jsonify(created.to_dict()), 201

    @app.route("/api/invoices/<invoice_id>", methods=["GET"])
    def invoice_get(invoice_id):
        inv = state.get_invoice(_parse_id(invoice_id, "invoice"))
        return jsonify(inv.to_dict())

    @app.route("/api/invoices/<invoice_id>", methods=["DELETE"])
    def invoice_delete(invoice_id):
        state.delete_invoice(_parse_id(invoice_id, "invoice"))
        return jsonify({"message": "Invoice deleted successfully"})

    @app.route("/api/invoices/<invoice_id>/template", methods=["PUT"])
    def invoice_toggle_template(invoice_id):
        iid = _parse_id(invoice_id, "invoice")

        # Body is optional: {"templateName": "..."}
        body = request.get_json(force=True, silent=True)
        template_name = ""
        if isinstance(body, dict) and isinstance(body.get("templateName"), str):
            template_name = body["templateName"]

        inv = state.toggle_template(iid, template_name)
        return jsonify({
            "message": "Template status updated",
            "template": inv.template,
            "templateName": inv.template_name,
        })

    @app.route("/api/invoices/<invoice_id>/pdf", methods=["GET"])
    def invoice_pdf(invoice_id):
        inv = state.get_invoice(_parse_id(invoice_id, "invoice"))
        company = state.get_settings().company

        try:
            data = render_invoice_pdf(inv, company)
        except Exception as e:
            logger.exception("PDF generation failed for %s", inv.invoice_num)
            abort(500, description=f"Error generating PDF: {e}")

        return send_file(
            io.BytesIO(data),
            as_attachment=True,
            download_name=pdf_filename(inv),
            mimetype="application/pdf",
        )

    # -----------------------------
    # Customers
    # -----------------------------
    @app.route("/api/customers", methods=["GET"])
    def customers_list():
        return jsonify([c.to_dict() for c in state.list_customers()])

    @app.route("/api/customers", methods=["POST"])
    def customer_create():
        customer = _decode_body(Customer)
        created = state.create_customer(customer)
        return jsonify(created.to_dict()), 201

    @app.route("/api/customers/<customer_id>", methods=["GET"])
    def customer_get(customer_id):
        c = state.get_customer(_parse_id(customer_id, "customer"))
        return jsonify(c.to_dict())

    @app.route("/api/customers/<customer_id>", methods=["PUT"])
    def customer_update(customer_id):
        cid = _parse_id(customer_id, "customer")
        customer = _decode_body(Customer)
        updated = state.update_customer(cid, customer)
        return jsonify(updated.to_dict())

    @app.route("/api/customers/<customer_id>", methods=["DELETE"])
    def customer_delete(customer_id):
        state.delete_customer(_parse_id(customer_id, "customer"))
        return jsonify({"message": "Customer deleted successfully"})

    # -----------------------------
    # Settings
    # -----------------------------
    @app.route("/api/settings", methods=["GET"])
    def settings_get():
        return jsonify(state.get_settings().to_dict())

    @app.route("/api/settings", methods=["POST"])
    def settings_update():
        settings = _decode_body(Settings)
        state.update_settings(settings)
        return jsonify({"status": "success"})

    # -----------------------------
    # Static frontend (fallback)
    # -----------------------------
    @app.route("/", defaults={"filename": "index.html"})
    @app.route("/<path:filename>")
    def static_files(filename):
        if filename == "api" or filename.startswith("api/"):
            abort(404)
        return send_from_directory(app.config["STATIC_DIR"], filename)

    return app


if __name__ == "__main__":
    logging.basicConfig(
        level=Config.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    app = create_app()
    logger.info("Server starting on %s:%d", Config.HOST, Config.PORT)
    app.run(host=Config.HOST, port=Config.PORT)
