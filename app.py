"""
Image Editor API – pixelcanvas
Python/Flask backend for the canvas editor: scaling, filters and saving.

Endpoints:
  POST /process          – Accept an image + scale factor / filter, return processed image.
  POST /api/save-image   – Store a processed image and log the operation.
  GET  /api/operations   – Most recent logged operations.
  GET  /blobs/<filename> – Stored images (public URLs point here).
  GET  /kernels          – Named convolution kernels.
  GET  /health           – Liveness check.
"""

import base64
import logging
import os

from flask import Flask, jsonify, request, send_from_directory
from flask_cors import CORS
from PIL import Image, UnidentifiedImageError

from pixelcanvas import Filter, NamedKernel, Raster, UnknownFilter, apply_filter, scale, scaled_size
from pixelcanvas.storage import (
    BlobStore,
    InvalidPayload,
    OperationLog,
    get_engine,
    save_processed_image,
)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

# Maximum allowed upload size (16 MB); save payloads carry a base64 PNG
app.config["MAX_CONTENT_LENGTH"] = int(os.environ.get("MAX_CONTENT_LENGTH", 16 * 1024 * 1024))
app.config["MAX_DIMENSION"] = int(os.environ.get("MAX_DIMENSION", 1200))  # px – shrink larger uploads
app.config["MAX_SCALE"] = float(os.environ.get("MAX_SCALE", 4.0))
app.config["CONVOLUTION_WORKERS"] = int(os.environ.get("CONVOLUTION_WORKERS", 1))
app.config["BLOB_DIR"] = os.environ.get("BLOB_DIR", os.path.join(BASE_DIR, "blobs"))
app.config["PUBLIC_BASE_URL"] = os.environ.get("PUBLIC_BASE_URL", "")
app.config["DATABASE_URL"] = os.environ.get(
    "DATABASE_URL", "sqlite:///" + os.path.join(BASE_DIR, "image_operations.db")
)

ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "bmp", "webp"}


def _allowed(filename: str) -> bool:
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def _blob_store() -> BlobStore:
    base = app.config["PUBLIC_BASE_URL"] or request.host_url.rstrip("/") + "/blobs"
    return BlobStore(app.config["BLOB_DIR"], base)


def _operation_log() -> OperationLog:
    return OperationLog(get_engine(app.config["DATABASE_URL"]))


def _data_url(raster: Raster) -> str:
    encoded = base64.b64encode(raster.to_png_bytes()).decode("utf-8")
    return "data:image/png;base64," + encoded


@app.errorhandler(405)
def method_not_allowed(_exc):
    return jsonify({"message": "Method Not Allowed"}), 405


@app.route("/process", methods=["POST"])
def process_image():
    """Accept an image file plus an optional scale factor and filter name and
    return the result as a PNG data-URI inside a JSON response."""

    if "image" not in request.files:
        return jsonify({"error": "No image provided"}), 400

    file = request.files["image"]
    if not file.filename or not _allowed(file.filename):
        return jsonify({"error": "Invalid file type"}), 400

    # --- Parse parameters ----------------------------------------------------
    try:
        factor = float(request.form.get("scale", 1.0))
    except ValueError:
        return jsonify({"error": "scale must be a number"}), 400
    if not 0 < factor <= app.config["MAX_SCALE"]:
        return jsonify({"error": f"scale must be in (0, {app.config['MAX_SCALE']}]"}), 400

    try:
        flt = Filter.parse(request.form.get("filter", "none"))
    except UnknownFilter as exc:
        return jsonify({"error": str(exc)}), 400

    try:
        img = Image.open(file.stream)
        img.load()
    except (UnidentifiedImageError, OSError):
        return jsonify({"error": "Could not decode image"}), 400

    try:
        # --- Load & optionally shrink ----------------------------------------
        max_dim = app.config["MAX_DIMENSION"]
        if max(img.size) > max_dim:
            img.thumbnail((max_dim, max_dim), Image.LANCZOS)
        raster = Raster.from_image(img)
        original_width, original_height = raster.width, raster.height

        # --- Scale, then filter ----------------------------------------------
        operations = []
        if factor != 1.0:
            if 0 in scaled_size(raster.width, raster.height, factor):
                return jsonify({"error": "scale leaves no pixels"}), 400
            raster = scale(raster, factor)
            operations.append(f"scale: {factor:g}x")
        if flt is not Filter.NONE:
            raster = apply_filter(raster, flt, workers=app.config["CONVOLUTION_WORKERS"])
            operations.append(f"filter: {flt.value}")

        operation = ", ".join(operations) or "none"
        logger.info("Processed %s: %s -> %r", file.filename, operation, raster)
        return jsonify({
            "image": _data_url(raster),
            "operation": operation,
            "original_width": original_width,
            "original_height": original_height,
            "new_width": raster.width,
            "new_height": raster.height,
        })

    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Processing %s failed", file.filename)
        return jsonify({"error": str(exc)}), 500


@app.route("/api/save-image", methods=["POST"])
def save_image():
    payload = request.get_json(silent=True)
    try:
        url = save_processed_image(payload, _blob_store(), _operation_log())
    except InvalidPayload as exc:
        return jsonify({"message": str(exc)}), 400
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Saving image failed")
        return jsonify({"message": f"Internal Server Error: {exc}"}), 500

    logger.info("Saved %s (%s) to %s", payload["image_name"], payload["operation"], url)
    return jsonify({"message": "Image and log saved successfully", "url": url})


@app.route("/api/operations", methods=["GET"])
def list_operations():
    limit = request.args.get("limit", 20, type=int)
    limit = max(1, min(limit, 100))
    try:
        rows = _operation_log().recent(limit)
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Reading operation log failed")
        return jsonify({"message": f"Internal Server Error: {exc}"}), 500
    for row in rows:
        row["timestamp"] = row["timestamp"].isoformat()
    return jsonify({"operations": rows})


@app.route("/blobs/<path:filename>", methods=["GET"])
def serve_blob(filename):
    return send_from_directory(app.config["BLOB_DIR"], filename)


@app.route("/kernels", methods=["GET"])
def kernels():
    return jsonify({k.value: k.kernel.to_dict() for k in NamedKernel})


@app.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


if __name__ == "__main__":
    app.run(debug=False, host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
