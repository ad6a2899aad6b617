#!/usr/bin/env python3
"""
Pixel Editor API Server
Each editing action has its own endpoint; every response carries the current image.
"""

import os
import asyncio
import logging
import uuid
from io import BytesIO
from typing import Dict
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
from werkzeug.utils import secure_filename

# --- Centralized Logging Configuration ---
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
    datefmt='%H:%M:%S'
)

# Import services and models
from models.errors import (
    DimensionMismatch,
    EditorError,
    InferenceError,
    InvalidParameter,
    ModelUnavailable,
    NoImageLoaded,
    NoOp,
    OutOfBounds,
    SessionBusy,
)
from services.edit_session import EditSession
from services.face_detection_service import FaceDetectionService
from services.image_service import ImageService
from services.segmentation_service import SegmentationService

app = Flask(__name__)
CORS(app)  # Enable CORS for frontend communication

# Configuration
MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_SIZE_MB", "25")) * 1024 * 1024
app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH

# Initialize services (models load lazily on first AI request)
image_service = ImageService()
segmentation_service = SegmentationService()
face_detection_service = FaceDetectionService()

logger = logging.getLogger(__name__)

# Session storage for editor state
sessions: Dict[str, EditSession] = {}

ERROR_STATUS = {
    NoOp: 409,
    SessionBusy: 409,
    NoImageLoaded: 409,
    InvalidParameter: 400,
    DimensionMismatch: 400,
    OutOfBounds: 400,
    ModelUnavailable: 503,
    InferenceError: 502,
}


def create_session() -> EditSession:
    """Fresh session wired to the shared model providers."""
    return EditSession(
        segmentation_provider=segmentation_service,
        face_detector=face_detection_service,
    )


def get_or_create_session(session_id: str = None):
    """Get existing session or create new one."""
    if session_id is None:
        session_id = str(uuid.uuid4())

    if session_id not in sessions:
        sessions[session_id] = create_session()

    return session_id, sessions[session_id]


def require_session():
    """Look up the session named in the JSON body."""
    payload = request.get_json(silent=True) or {}
    session_id = payload.get('session_id')
    if not session_id or session_id not in sessions:
        raise InvalidParameter('Invalid session')
    return session_id, sessions[session_id], payload


def session_state(session_id: str, session: EditSession, **extra):
    """Serialise the session for the frontend."""
    state = {
        'success': True,
        'session_id': session_id,
        'width': session.current.width,
        'height': session.current.height,
        'image': image_service.to_data_url(session.current),
        'params': {
            'brightness': session.params.brightness,
            'contrast': session.params.contrast,
            'saturation': session.params.saturation,
        },
        'active_filter': session.active_filter.value if session.active_filter else None,
        'can_undo': session.can_undo,
        'can_redo': session.can_redo,
        'history_length': len(session.history),
        'history_cursor': session.history.cursor,
    }
    state.update(extra)
    return jsonify(state)


@app.route('/api/load-image', methods=['POST'])
def load_image():
    """Decode an uploaded image and start (or restart) a session with it."""
    if 'image' not in request.files:
        raise InvalidParameter('No image provided')

    file = request.files['image']
    filename = secure_filename(file.filename or '')
    if not filename or not image_service.is_supported(filename):
        raise InvalidParameter(f'Unsupported file: {file.filename!r}')

    buffer = image_service.decode(file.read())
    session_id, session = get_or_create_session(request.form.get('session_id'))
    session.load_image(buffer)

    logger.info(f"Session {session_id}: loaded {filename} ({buffer.width}x{buffer.height})")
    return session_state(session_id, session)


@app.route('/api/adjust', methods=['POST'])
def adjust():
    """Slider preview; does not touch history."""
    session_id, session, payload = require_session()
    params = session.params.replace(**{
        key: payload[key]
        for key in ('brightness', 'contrast', 'saturation')
        if key in payload
    })
    session.update_adjustments(params)
    return session_state(session_id, session)


@app.route('/api/commit-adjustments', methods=['POST'])
def commit_adjustments():
    session_id, session, _ = require_session()
    session.commit_adjustments()
    return session_state(session_id, session)


@app.route('/api/filter', methods=['POST'])
def apply_filter():
    session_id, session, payload = require_session()
    if 'filter' not in payload:
        raise InvalidParameter('No filter provided')
    session.apply_filter(payload['filter'], radius=payload.get('radius'))
    return session_state(session_id, session)


@app.route('/api/enhance', methods=['POST'])
def enhance():
    session_id, session, _ = require_session()
    session.enhance()
    return session_state(session_id, session)


@app.route('/api/auto-enhance', methods=['POST'])
def auto_enhance():
    session_id, session, _ = require_session()
    session.auto_enhance()
    return session_state(session_id, session)


@app.route('/api/remove-background', methods=['POST'])
def remove_background():
    session_id, session, payload = require_session()
    background = payload.get('background')
    logger.info(f"Running background removal for session {session_id}")
    asyncio.run(session.remove_background(background))
    return session_state(session_id, session)


@app.route('/api/detect-faces', methods=['POST'])
def detect_faces():
    session_id, session, _ = require_session()
    logger.info(f"Running face detection for session {session_id}")
    boxes = asyncio.run(session.detect_faces())
    message = f'Detected {len(boxes)} face(s)' if boxes else 'No faces detected in the image'
    return session_state(
        session_id,
        session,
        faces=[{'top_left': list(b.top_left), 'bottom_right': list(b.bottom_right), 'score': b.score}
               for b in boxes],
        message=message,
    )


@app.route('/api/undo', methods=['POST'])
def undo():
    session_id, session, _ = require_session()
    session.undo()
    return session_state(session_id, session)


@app.route('/api/redo', methods=['POST'])
def redo():
    session_id, session, _ = require_session()
    session.redo()
    return session_state(session_id, session)


@app.route('/api/reset', methods=['POST'])
def reset():
    session_id, session, _ = require_session()
    session.reset()
    return session_state(session_id, session)


@app.route('/api/export/<session_id>', methods=['GET'])
def export_image(session_id):
    """Download the current state as PNG."""
    if session_id not in sessions:
        return jsonify({'error': 'Session not found'}), 404
    png = image_service.to_png_bytes(sessions[session_id].export())
    return send_file(BytesIO(png), mimetype='image/png',
                     as_attachment=True, download_name='edited-image.png')


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'message': 'Pixel Editor API is running',
        'active_sessions': len(sessions)
    })


@app.route('/api/clear-session', methods=['POST'])
def clear_session():
    """Clear a session and free memory."""
    session_id = (request.get_json(silent=True) or {}).get('session_id')
    if session_id and session_id in sessions:
        del sessions[session_id]
        return jsonify({'success': True, 'message': 'Session cleared'})
    return jsonify({'success': False, 'message': 'Session not found'})


@app.errorhandler(EditorError)
def editor_error(e):
    """Map engine errors onto HTTP status codes."""
    status = next((code for cls, code in ERROR_STATUS.items() if isinstance(e, cls)), 500)
    if status >= 500:
        logger.error(f"{type(e).__name__}: {e}")
    else:
        logger.info(f"{type(e).__name__}: {e}")
    return jsonify({'success': False, 'error': type(e).__name__, 'message': str(e)}), status


@app.errorhandler(413)
def too_large(e):
    """Handle file too large error."""
    return jsonify({'error': f'File too large. Maximum size is {MAX_CONTENT_LENGTH // (1024 * 1024)}MB.'}), 413


@app.errorhandler(400)
def bad_request(e):
    """Handle bad request error."""
    return jsonify({'error': 'Bad request'}), 400


@app.errorhandler(500)
def internal_error(e):
    """Handle internal server error."""
    logger.error(f"Internal server error: {e}")
    return jsonify({'error': 'Internal server error'}), 500


def main():
    """Run the development server."""
    print("🚀 Starting Pixel Editor API Server...")
    print(f"🔧 Max upload size: {MAX_CONTENT_LENGTH // (1024*1024)}MB")
    print("🌐 CORS enabled for frontend communication")
    print("📋 Endpoints:")
    print("   /api/load-image, /api/adjust, /api/commit-adjustments")
    print("   /api/filter, /api/enhance, /api/auto-enhance")
    print("   /api/remove-background, /api/detect-faces")
    print("   /api/undo, /api/redo, /api/reset, /api/export/<session_id>")
    print("="*60)

    app.run(
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "5000")),
        debug=False,
        threaded=True
    )


if __name__ == '__main__':
    main()
