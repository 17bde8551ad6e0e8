"""
Flask application for the contract risk analyzer.
"""
import logging
import os

from dotenv import load_dotenv
from flask import Flask, jsonify
from werkzeug.middleware.proxy_fix import ProxyFix

from analyzer.cache import blob_cache
from analyzer.routes.contract_routes import contracts_bp
from analyzer.services.analysis_store import AnalysisStore, CachedAnalysisReader
from analyzer.services.blob_store import BlobStore

# Load environment variables before reading any configuration
load_dotenv()

logger = logging.getLogger(__name__)


def create_app(overrides=None):
    """Create and configure the Flask app."""
    app = Flask(__name__)
    app.secret_key = os.getenv('SECRET_KEY', 'dev-secret-key')

    # Trust one reverse proxy for scheme, host and client address
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    app.config.update(
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE='Lax',
        SESSION_COOKIE_SECURE=os.getenv('SESSION_COOKIE_SECURE', 'false').lower() == 'true',
        MAX_CONTENT_LENGTH=int(os.getenv('MAX_UPLOAD_MB', '10')) * 1024 * 1024,
        ANALYSIS_DATA_DIR=os.getenv('ANALYSIS_DATA_DIR', 'data/analyses'),
    )
    if overrides:
        app.config.update(overrides)

    blob_store = BlobStore(app.config.get('BLOB_CACHE', blob_cache))
    store = AnalysisStore(app.config['ANALYSIS_DATA_DIR'])
    app.extensions['blob_store'] = blob_store
    app.extensions['analysis_reader'] = CachedAnalysisReader(store, blob_store)

    app.register_blueprint(contracts_bp)

    @app.route('/api/health')
    def health():
        return jsonify({'message': 'OK'})

    logger.info(f"App created: data_dir={app.config['ANALYSIS_DATA_DIR']}")
    return app


logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s'
)

app = create_app()

if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=int(os.getenv('PORT', '5000')))
