"""
Test app for collection-filters.
A small Flask JSON API over a sample card catalog: browse a collection, toggle filters,
and ask for filters in plain English.
"""

import sys
import os
import logging
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from flask import Flask, request, jsonify
from dotenv import load_dotenv

load_dotenv()

from collection_filters import (
    CollectionFilterEngine, FileStorage, FilterBot, FilterStateStore, FilterStoreError,
)
from data import (
    ANCESTOR_CHAINS, ANCESTOR_COLLECTIONS, COLLECTION_ITEMS, FIELD_METADATA, OWNED_ITEM_IDS,
)

logger = logging.getLogger(__name__)

ROOT_COLLECTION_ID = 'root'


def _ancestors(collection_id):
    return [ANCESTOR_COLLECTIONS[c] for c in ANCESTOR_CHAINS.get(collection_id, [])
            if c in ANCESTOR_COLLECTIONS]


def _json_body():
    """The request body when it is a JSON object, else None."""
    body = request.get_json(silent=True)
    if body is None:
        return {}
    return body if isinstance(body, dict) else None


def create_app(storage=None, filter_bot=None):
    """
    Build the app.

    Args:
        storage: Key/value storage for the filter store (default: FileStorage
                 under COLLECTION_FILTERS_DIR)
        filter_bot: FilterBot instance; created on first use if omitted
    """
    app = Flask(__name__)
    engine = CollectionFilterEngine(FilterStateStore(storage if storage is not None else FileStorage()))
    bots = {'filter': filter_bot}

    def get_filter_bot():
        if bots['filter'] is None:
            bots['filter'] = FilterBot()
        return bots['filter']

    def data_state(collection_id):
        """Filtered items, catalog and counts for a collection. Used by all filter routes."""
        signed_in = bool(request.headers.get('X-User'))
        if collection_id == engine.store.active_collection_id:
            chain = engine.store.ancestor_chain
        else:
            chain = ANCESTOR_CHAINS.get(collection_id, [])
        is_root = collection_id == ROOT_COLLECTION_ID
        return engine.view(
            collection_id,
            COLLECTION_ITEMS.get(collection_id, []),
            ancestor_collections=_ancestors(collection_id),
            ownership_set=OWNED_ITEM_IDS if signed_in else None,
            is_authenticated=signed_in,
            remote_metadata=None if is_root else FIELD_METADATA.get(collection_id, []),
            ancestor_chain=chain,
            is_root=is_root,
        )

    def bad_body():
        return jsonify({'error': 'Body must be a JSON object'}), 400

    def require_known(collection_id):
        if collection_id not in COLLECTION_ITEMS:
            return jsonify({'error': f'Unknown collection: {collection_id}'}), 404
        return None

    @app.errorhandler(FilterStoreError)
    def store_error(e):
        return jsonify({'error': str(e)}), 500

    # --- Browsing ---

    @app.route('/api/collections/<collection_id>/activate', methods=['POST'])
    def activate(collection_id):
        missing = require_known(collection_id)
        if missing:
            return missing
        body = _json_body()
        if body is None:
            return bad_body()
        chain = body.get('ancestors')
        if chain is None:
            chain = ANCESTOR_CHAINS.get(collection_id, [])
        elif not isinstance(chain, list):
            return jsonify({'error': '"ancestors" must be a list'}), 400
        engine.set_active_collection(collection_id, chain)
        return jsonify(data_state(collection_id))

    @app.route('/api/collections/<collection_id>/view')
    def view(collection_id):
        missing = require_known(collection_id)
        if missing:
            return missing
        return jsonify(data_state(collection_id))

    # --- Filters ---

    @app.route('/api/collections/<collection_id>/filters', methods=['PUT'])
    def set_filters(collection_id):
        body = _json_body()
        if body is None:
            return bad_body()
        filters = body.get('filters')
        if not isinstance(filters, dict):
            return jsonify({'error': 'Body must contain a "filters" object'}), 400
        engine.set_filters(collection_id, filters)
        return jsonify(data_state(collection_id))

    @app.route('/api/collections/<collection_id>/filters/<path:field>', methods=['POST'])
    def update_field(collection_id, field):
        body = _json_body()
        if body is None:
            return bad_body()
        values = body.get('values')
        engine.update_field(collection_id, field, values)
        return jsonify(data_state(collection_id))

    @app.route('/api/collections/<collection_id>/filters/<path:field>', methods=['DELETE'])
    def clear_field(collection_id, field):
        engine.clear_field(collection_id, field)
        return jsonify(data_state(collection_id))

    @app.route('/api/collections/<collection_id>/filters/clear', methods=['POST'])
    def clear_filters(collection_id):
        engine.clear_all_for_collection(collection_id)
        return jsonify(data_state(collection_id))

    # --- Natural language ---

    @app.route('/api/collections/<collection_id>/interpret', methods=['POST'])
    def interpret(collection_id):
        body = _json_body()
        if body is None:
            return bad_body()
        message = body.get('message')
        if not isinstance(message, str) or not message.strip():
            return jsonify({'error': 'No message provided'}), 400

        state = data_state(collection_id)
        bot = get_filter_bot()
        current = engine.get_filters(collection_id, include_inherited=False)
        spec = bot.interpret_filter(message, state['fields'], current)

        is_valid, err = bot.validate_filter(spec, state['fields'])
        if not is_valid:
            return jsonify({'error': err}), 400

        engine.set_filters(collection_id, {**current, **spec['filters']})
        state = data_state(collection_id)
        state['description'] = spec['description']
        return jsonify(state)

    return app


if __name__ == '__main__':
    logging.basicConfig(level=os.getenv('LOG_LEVEL', 'INFO'))
    port = int(os.getenv('PORT', '5003'))
    app = create_app()
    logger.info("Test app running at http://localhost:%d", port)
    app.run(debug=True, port=port)
