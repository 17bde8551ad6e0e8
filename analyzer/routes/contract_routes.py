from flask import Blueprint, request, jsonify, current_app
import logging

from analyzer.errors import AnalysisError
from analyzer.services.analysis_orchestrator import run_analyze, run_detect
from analyzer.services.analysis_store import is_valid_analysis_id
from analyzer.utils.auth_utils import current_user_id, is_premium_user, login_required

contracts_bp = Blueprint('contracts', __name__, url_prefix='/contracts')
logger = logging.getLogger(__name__)

UPLOAD_FIELD = 'contract'


def _blob_store():
    return current_app.extensions['blob_store']


def _reader():
    return current_app.extensions['analysis_reader']


def _read_pdf_upload():
    """
    Return (bytes, None) for a valid PDF upload, (None, None) when no file was
    sent, or (None, error_response) when the file is not a PDF.
    """
    file = request.files.get(UPLOAD_FIELD)
    if file is None or file.filename == '':
        return None, None

    if file.mimetype != 'application/pdf' and not file.filename.lower().endswith('.pdf'):
        return None, (jsonify({'error': 'Only pdf files are allowed'}), 400)

    return file.read(), None


@contracts_bp.route('/detect-type', methods=['POST'])
@login_required
def detect_type():
    """Store the upload and detect its contract type"""
    file_bytes, error = _read_pdf_upload()
    if error:
        return error
    if file_bytes is None:
        return jsonify({'error': 'No file uploaded'}), 400

    user_id = current_user_id()
    try:
        result = run_detect(_blob_store(), user_id, file_bytes)
    except AnalysisError:
        logger.exception(f"Contract type detection failed for user {user_id}")
        return jsonify({'error': 'Failed to detect contract type'}), 500
    except Exception:
        logger.exception(f"Unexpected error detecting contract type for user {user_id}")
        return jsonify({'error': 'Failed to detect contract type'}), 500

    return jsonify(result)


@contracts_bp.route('/analyze', methods=['POST'])
@login_required
def analyze():
    """Analyze a contract from a fresh upload or a parked upload key"""
    file_bytes, error = _read_pdf_upload()
    if error:
        return error

    upload_key = request.form.get('uploadKey')
    contract_type = request.form.get('contractType')
    user_id = current_user_id()

    if file_bytes is None and not upload_key:
        return jsonify({'error': 'No file uploaded'}), 400
    if not contract_type:
        return jsonify({'error': 'No contract type provided'}), 400
    if file_bytes is None and not _blob_store().owns_upload(user_id, upload_key):
        return jsonify({'error': 'Invalid upload key'}), 400

    try:
        record = run_analyze(
            _blob_store(),
            _reader(),
            user_id,
            contract_type,
            is_premium_user(),
            file_bytes=file_bytes,
            upload_key=upload_key
        )
    except AnalysisError:
        logger.exception(f"Contract analysis failed for user {user_id}")
        return jsonify({'error': 'Failed to analyze contract'}), 500
    except Exception:
        logger.exception(f"Unexpected error analyzing contract for user {user_id}")
        return jsonify({'error': 'Failed to analyze contract'}), 500

    return jsonify(record)


@contracts_bp.route('/user-contracts', methods=['GET'])
@login_required
def user_contracts():
    """List the caller's analyses, newest first"""
    try:
        return jsonify(_reader().list(current_user_id()))
    except Exception:
        logger.exception("Failed to list contracts")
        return jsonify({'error': 'Failed to get contracts'}), 500


@contracts_bp.route('/contract/<analysis_id>', methods=['GET'])
@login_required
def get_contract(analysis_id):
    """Fetch one analysis through the read cache"""
    if not is_valid_analysis_id(analysis_id):
        return jsonify({'error': 'Invalid contract ID'}), 400

    try:
        record = _reader().get(analysis_id, current_user_id())
    except Exception:
        logger.exception(f"Failed to get contract {analysis_id}")
        return jsonify({'error': 'Failed to get contract'}), 500

    if record is None:
        return jsonify({'error': 'Contract not found'}), 404
    return jsonify(record)


@contracts_bp.route('/contract/<analysis_id>', methods=['DELETE'])
@login_required
def delete_contract(analysis_id):
    """Delete an analysis and drop its cache entry"""
    if not is_valid_analysis_id(analysis_id):
        return jsonify({'error': 'Invalid contract ID'}), 400

    try:
        deleted = _reader().delete(analysis_id, current_user_id())
    except Exception:
        logger.exception(f"Failed to delete contract {analysis_id}")
        return jsonify({'error': 'Failed to delete contract'}), 500

    if not deleted:
        return jsonify({'error': 'Contract not found'}), 404
    return jsonify({'message': 'Contract deleted successfully'})
