"""
Flask API for Flaw Detection

Provides REST endpoints for setting the reference image, configuring
parameters, running single-shot and batch detection, and feeding live
frames to the background worker.
"""

import os
import cv2
import numpy as np
import base64
import json
import logging
from datetime import datetime
from flask import Blueprint, request, jsonify, current_app
from werkzeug.utils import secure_filename

from .. import __version__
from ..core import DetectionParams, FlawDetector, FlawDetectError, FrameWorker
from ..core.overlay import change_overlay, draw_boxes

logger = logging.getLogger(__name__)

api = Blueprint('api', __name__)

# Global detector state, rebuilt by reset_state() when an app is created
detector = FlawDetector()
current_params = DetectionParams()
worker = FrameWorker(detector)

ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'bmp', 'tiff', 'tif'}

REFERENCE_FILENAME = 'reference.png'
CONFIG_FILENAME = 'reference_config.json'


def reset_state():
    """Drop the current reference, parameters and worker."""
    global detector, current_params, worker
    if worker.is_running():
        worker.stop()
    current_params = DetectionParams()
    detector = FlawDetector(current_params)
    worker = FrameWorker(detector)


def allowed_file(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def _saved_paths():
    saved_dir = current_app.config['SAVED_DATA_DIR']
    return (saved_dir,
            os.path.join(saved_dir, REFERENCE_FILENAME),
            os.path.join(saved_dir, CONFIG_FILENAME))


def _write_saved_reference(image: np.ndarray) -> dict:
    saved_dir, image_path, config_path = _saved_paths()
    os.makedirs(saved_dir, exist_ok=True)
    cv2.imwrite(image_path, image)

    config = {
        "upload_timestamp": datetime.now().isoformat(),
        "image_shape": list(image.shape),
        "params": current_params.to_dict(),
    }
    with open(config_path, 'w') as f:
        json.dump(config, f, indent=2)
    return config


def _read_saved_reference():
    """Return (image, config), or (None, None) when nothing is saved."""
    _, image_path, config_path = _saved_paths()
    if not os.path.exists(image_path) or not os.path.exists(config_path):
        return None, None

    with open(config_path, 'r') as f:
        config = json.load(f)

    image = cv2.imread(image_path, cv2.IMREAD_UNCHANGED)
    return image, config


def _apply_saved_config(config: dict):
    global current_params
    if config.get("params"):
        current_params = DetectionParams.from_dict(config["params"])
        detector.params = current_params


def load_saved_reference_on_startup():
    """Load saved reference on application startup if it exists."""
    image, config = _read_saved_reference()
    if config is None:
        logger.info("No saved reference found. Starting fresh.")
        return
    if image is None:
        logger.warning("Failed to load saved reference image.")
        return

    _apply_saved_config(config)
    detector.set_reference(image)
    logger.info(f"Auto-loaded saved reference (saved {config.get('upload_timestamp', 'unknown')})")


def encode_image_base64(image: np.ndarray, format: str = '.png') -> str:
    """Encode numpy image to base64 string."""
    _, buffer = cv2.imencode(format, image)
    return base64.b64encode(buffer).decode('utf-8')


def decode_image_base64(base64_str: str) -> np.ndarray:
    """Decode base64 string to numpy image."""
    img_data = base64.b64decode(base64_str)
    nparr = np.frombuffer(img_data, np.uint8)
    return cv2.imdecode(nparr, cv2.IMREAD_COLOR)


def _image_from_request():
    """
    Read an image from a multipart 'file' field or a JSON 'image' field.

    Returns:
        (image, None) on success, (None, (response, status)) on failure
    """
    if 'file' in request.files:
        file = request.files['file']
        if file.filename == '':
            return None, (jsonify({"error": "No file selected"}), 400)
        if not allowed_file(file.filename):
            return None, (jsonify({"error": "Invalid file type"}), 400)
        nparr = np.frombuffer(file.read(), np.uint8)
        image = cv2.imdecode(nparr, cv2.IMREAD_COLOR)

    elif request.is_json and 'image' in (request.get_json(silent=True) or {}):
        try:
            image = decode_image_base64(request.get_json()['image'])
        except Exception as e:
            return None, (jsonify({"error": f"Failed to decode image: {str(e)}"}), 400)
    else:
        return None, (jsonify({"error": "No image provided"}), 400)

    if image is None:
        return None, (jsonify({"error": "Failed to load image"}), 400)
    return image, None


@api.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({"status": "healthy", "version": __version__})


@api.route('/params', methods=['GET'])
def get_params():
    """Get current detection parameters."""
    return jsonify(current_params.to_dict())


@api.route('/params', methods=['POST'])
def set_params():
    """Update detection parameters."""
    global current_params

    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "No JSON data provided"}), 400

    try:
        current_params = DetectionParams.from_dict({**current_params.to_dict(), **data})
    except (TypeError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    detector.params = current_params
    return jsonify({"status": "success", "params": current_params.to_dict()})


@api.route('/params/reset', methods=['POST'])
def reset_params():
    """Reset parameters to defaults."""
    global current_params
    current_params = DetectionParams()
    detector.params = current_params
    return jsonify({"status": "success", "params": current_params.to_dict()})


@api.route('/reference', methods=['POST'])
def upload_reference():
    """Upload reference (base) image."""
    image, error = _image_from_request()
    if error:
        return error

    try:
        info = detector.set_reference(image)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    # Auto-save reference when uploaded
    try:
        _write_saved_reference(image)
    except OSError as e:
        logger.warning(f"Failed to auto-save reference: {e}")

    return jsonify({
        "status": "success",
        "info": {
            "image_shape": list(info["image_shape"]),
            "state": info["state"],
        },
        "preview": encode_image_base64(image),
    })


@api.route('/reference', methods=['DELETE'])
def clear_reference():
    """Forget the current reference image."""
    if worker.is_running():
        worker.stop()
    detector.clear_reference()
    return jsonify({"status": "success", "state": detector.state.value})


@api.route('/reference/status', methods=['GET'])
def reference_status():
    """Report whether a reference is active and whether one is saved."""
    _, image_path, config_path = _saved_paths()
    exists = os.path.exists(image_path) and os.path.exists(config_path)

    config = None
    if exists:
        try:
            with open(config_path, 'r') as f:
                config = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read saved reference config: {e}")

    return jsonify({
        "has_reference": detector.has_reference,
        "state": detector.state.value,
        "has_saved_reference": exists,
        "config": config,
    })


@api.route('/reference/save', methods=['POST'])
def save_reference():
    """Save current reference image and configuration to disk."""
    if not detector.has_reference:
        return jsonify({"error": "No reference image to save"}), 400

    try:
        config = _write_saved_reference(detector.reference_image)
    except OSError as e:
        return jsonify({"error": str(e)}), 500

    return jsonify({
        "status": "success",
        "message": "Reference saved successfully",
        "config": config,
    })


@api.route('/reference/load', methods=['POST'])
def load_reference():
    """Load saved reference image and configuration from disk."""
    image, config = _read_saved_reference()
    if config is None:
        return jsonify({"error": "No saved reference found"}), 404
    if image is None:
        return jsonify({"error": "Failed to load saved image"}), 500

    _apply_saved_config(config)
    info = detector.set_reference(image)

    return jsonify({
        "status": "success",
        "config": config,
        "info": {
            "image_shape": list(info["image_shape"]),
            "state": info["state"],
        },
        "original": encode_image_base64(image),
    })


@api.route('/detect', methods=['POST'])
def detect_flaws():
    """Run flaw detection on a single image."""
    if not detector.has_reference:
        return jsonify({"error": "No reference image set. Upload reference first."}), 400

    image, error = _image_from_request()
    if error:
        return error

    try:
        result = detector.detect(image, current_params)
    except (FlawDetectError, ValueError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.exception("Detection failed")
        return jsonify({"error": str(e)}), 500

    images = {"overlay": encode_image_base64(draw_boxes(image, result.boxes))}
    if result.aligned_base is not None:
        images["aligned_base"] = encode_image_base64(result.aligned_base)
    if result.change_map is not None:
        images["change_map"] = encode_image_base64(result.change_map)
        images["change_overlay"] = encode_image_base64(
            change_overlay(image, result.change_map, result.boxes)
        )

    return jsonify({
        "status": "success",
        "result": result.to_dict(),
        "images": images,
    })


@api.route('/batch', methods=['POST'])
def batch_detect():
    """Run detection on multiple images against the current reference."""
    if not detector.has_reference:
        return jsonify({"error": "No reference image set"}), 400

    if 'files' not in request.files:
        return jsonify({"error": "No files provided"}), 400

    files = request.files.getlist('files')
    results = []

    for file in files:
        if not (file and allowed_file(file.filename)):
            continue
        filename = secure_filename(file.filename)
        nparr = np.frombuffer(file.read(), np.uint8)
        image = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
        if image is None:
            results.append({"filename": filename, "error": "Failed to load image"})
            continue
        try:
            result = detector.detect(image, current_params)
            results.append({"filename": filename, "result": result.to_dict()})
        except (FlawDetectError, ValueError) as e:
            results.append({"filename": filename, "error": str(e)})

    return jsonify({
        "status": "success",
        "count": len(results),
        "results": results,
    })


@api.route('/detection/start', methods=['POST'])
def start_detection():
    """Start the live frame worker."""
    if not detector.has_reference:
        return jsonify({"error": "No reference image set"}), 400
    worker.start()
    return jsonify({"status": "success", "running": worker.is_running()})


@api.route('/detection/stop', methods=['POST'])
def stop_detection():
    """Stop the live frame worker."""
    worker.stop()
    return jsonify({"status": "success", "running": worker.is_running()})


@api.route('/detection/status', methods=['GET'])
def detection_status():
    return jsonify({
        "running": worker.is_running(),
        "busy": worker.is_busy(),
        "state": detector.state.value,
        "processed_frames": worker.processed_frames,
        "dropped_frames": worker.dropped_frames,
    })


@api.route('/frames', methods=['POST'])
def submit_frame():
    """Offer a live frame to the worker; dropped while a frame is in flight."""
    if not worker.is_running():
        return jsonify({"error": "Detection is not running"}), 409

    image, error = _image_from_request()
    if error:
        return error

    accepted = worker.submit(image)
    return jsonify({"status": "success", "accepted": accepted}), 202 if accepted else 200


@api.route('/frames/latest', methods=['GET'])
def latest_result():
    """Most recent live detection result."""
    result = worker.latest_result
    if result is None:
        return jsonify({"status": "empty", "result": None})
    return jsonify({"status": "success", "result": result.to_dict()})
