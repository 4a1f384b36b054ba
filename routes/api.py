"""
API Routes
Provides RESTful endpoints for DX spots, paths, filters and propagation.
"""

import logging
from datetime import datetime

import pytz
from flask import Blueprint, jsonify, current_app, request
from flask_caching import Cache

from models import FilterSet
from data_sources.spots_data import SpotsDataProvider

api_bp = Blueprint('api', __name__)
logger = logging.getLogger(__name__)

# Bound to the app in create_app
cache = Cache()


def _service():
    return current_app.config.get('DX_CLUSTER')


def _request_filters():
    """Filters from the ``filters`` query parameter, or None for the saved set.

    Raises ValueError when the parameter is not a JSON object.
    """
    raw = request.args.get('filters')
    if not raw:
        return None
    return FilterSet.from_json(raw)


@api_bp.route('/dxcluster/spots', methods=['GET'])
def get_spots():
    """Poll the selected source once and return the filtered spot list."""
    try:
        service = _service()
        if not service:
            return jsonify({'error': 'DX cluster service not available'}), 503

        try:
            filters = _request_filters()
            service.poll(request.args.get('source'))
        except ValueError as e:
            return jsonify({'error': str(e)}), 400

        return jsonify(service.list_view(filters))

    except Exception as e:
        logger.error(f"Error getting spots: {e}")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/dxcluster/sources', methods=['GET'])
@cache.cached(timeout=3600, key_prefix='dxcluster_sources')
def get_sources():
    """List the selectable spot sources."""
    return jsonify({'sources': SpotsDataProvider.list_sources()})


@api_bp.route('/dxcluster/source', methods=['GET', 'POST'])
def spot_source():
    """Get or change the persisted spot source."""
    try:
        service = _service()
        if not service:
            return jsonify({'error': 'DX cluster service not available'}), 503

        if request.method == 'POST':
            data = request.get_json(silent=True) or {}
            if not isinstance(data, dict):
                return jsonify({'error': 'Body must be a JSON object'}), 400
            try:
                source = service.set_source(data.get('source'))
            except ValueError as e:
                return jsonify({'error': str(e)}), 400
            return jsonify({'success': True, 'source': source})

        return jsonify({'source': service.get_source()})

    except Exception as e:
        logger.error(f"Error handling spot source: {e}")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/dxcluster/paths', methods=['GET'])
def get_paths():
    """Filtered spots with both endpoints located and their great-circle path."""
    try:
        service = _service()
        if not service:
            return jsonify({'error': 'DX cluster service not available'}), 503

        try:
            filters = _request_filters()
        except ValueError as e:
            return jsonify({'error': f'Invalid filters: {e}'}), 400

        return jsonify(service.path_view(filters))

    except Exception as e:
        logger.error(f"Error getting paths: {e}")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/dxcluster/status', methods=['GET'])
def get_status():
    try:
        service = _service()
        if not service:
            return jsonify({'error': 'DX cluster service not available'}), 503
        return jsonify(service.status())
    except Exception as e:
        logger.error(f"Error getting DX cluster status: {e}")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/dxcluster/filters', methods=['GET', 'POST'])
def spot_filters():
    """Get or persist the spot filters. Saving re-applies retention right away."""
    try:
        service = _service()
        if not service:
            return jsonify({'error': 'DX cluster service not available'}), 503

        if request.method == 'POST':
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                return jsonify({'error': 'Filters must be a JSON object'}), 400

            filters, evicted = service.set_filters(data)
            return jsonify({'success': True, 'filters': filters.to_dict(), 'evicted': evicted})

        return jsonify(service.get_filters().to_dict())

    except Exception as e:
        logger.error(f"Error handling spot filters: {e}")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/propagation', methods=['GET'])
def get_propagation():
    """Band reliability between two points for the next 24 hours."""
    try:
        service = _service()
        if not service:
            return jsonify({'error': 'DX cluster service not available'}), 503

        args = request.args
        try:
            result = service.propagation(args.get('deLat'), args.get('deLon'),
                                         args.get('dxLat'), args.get('dxLon'))
        except ValueError as e:
            return jsonify({'error': str(e)}), 400

        return jsonify(result)

    except Exception as e:
        logger.error(f"Error calculating propagation: {e}")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/solar-indices', methods=['GET'])
def get_solar_indices():
    """Current SFI, SSN and Kp with their recent history."""
    try:
        service = _service()
        if not service:
            return jsonify({'error': 'DX cluster service not available'}), 503
        return jsonify(service.solar_indices())
    except Exception as e:
        logger.error(f"Error getting solar indices: {e}")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/cache/stats', methods=['GET'])
def get_cache_stats():
    """Get cache statistics."""
    try:
        cache_manager = current_app.extensions['cache_manager']
        return jsonify(cache_manager.get_stats())
    except Exception as e:
        logger.error(f"Error getting cache stats: {e}")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/cache/clear', methods=['POST'])
def clear_cache():
    """Clear specific cache or all caches."""
    try:
        cache_manager = current_app.extensions['cache_manager']

        data = request.get_json(silent=True) or {}
        cache_type = data.get('cache_type')

        if cache_type:
            if cache_type not in cache_manager.caches:
                return jsonify({'error': f'Unknown cache: {cache_type}'}), 400
            removed = cache_manager.clear(cache_type)
            return jsonify({'message': f'Cache {cache_type} cleared', 'removed': removed})

        removed = cache_manager.clear()
        return jsonify({'message': 'All caches cleared', 'removed': removed})

    except Exception as e:
        logger.error(f"Error clearing cache: {e}")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/health', methods=['GET'])
def health():
    """Liveness check."""
    task_manager = current_app.config.get('TASK_MANAGER')
    return jsonify({
        'status': 'ok',
        'timestamp': datetime.now(pytz.utc).isoformat(),
        'polling': bool(task_manager and task_manager.running),
        'tasks': task_manager.get_status()['tasks'] if task_manager else {},
    })
