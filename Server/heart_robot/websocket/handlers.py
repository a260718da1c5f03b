"""
WebSocket Event Handlers

Pushes mission updates (clock ticks, state changes, finish) to the player
and treats leaving or disconnecting as abandoning the mission.
"""

from flask import request
from flask_socketio import emit, join_room, leave_room
from ..services.mission_service import get_mission_service
from ..utils.decorators import websocket_auth_required
from ..utils.game_logger import game_logger

# socket id -> (user_id, mission_id)
connected_players = {}


def mission_room(mission_id):
    return f"mission_{mission_id}"


def make_socketio_notifier(socketio):
    """Build the notifier missions use to push events to their room."""
    def notify(mission_id, event, payload):
        socketio.emit(event, {'mission_id': mission_id, **payload}, to=mission_room(mission_id))
    return notify


def register_websocket_handlers(socketio):
    """Register all WebSocket event handlers."""

    @socketio.on('connect')
    def handle_connect():
        """Handle WebSocket connection."""
        pass

    @socketio.on('disconnect')
    def handle_disconnect(*args):
        """Leaving the page abandons the mission that was open on it."""
        entry = connected_players.pop(request.sid, None)
        if not entry:
            return

        user_id, mission_id = entry
        mission_service = get_mission_service()
        if not mission_service:
            return

        result = mission_service.abandon_mission(mission_id, user_id)
        if result.get('abandoned'):
            game_logger.logger.info(f"WebSocket disconnect: mission {mission_id} of {user_id} abandoned")

    @socketio.on('join_mission')
    @websocket_auth_required
    def handle_join_mission(data, user=None):
        """Subscribe to a mission's updates."""
        mission_service = get_mission_service()
        if not mission_service:
            emit('error', {'error': 'Mission service unavailable', 'error_code': 'service_unavailable'})
            return

        mission_id = data.get('mission_id')
        if not mission_id:
            emit('error', {'error': 'Mission ID is required', 'error_code': 'invalid_input'})
            return

        mission = mission_service.get_mission(mission_id, user['id'])
        if mission is None:
            emit('error', {'error': 'Mission not found or access denied', 'error_code': 'mission_not_found'})
            return

        join_room(mission_room(mission_id))
        connected_players[request.sid] = (user['id'], mission_id)

        game_logger.logger.info(f"WebSocket: {user['name']} joined mission {mission_id}")

        emit('mission_state', {
            'mission_id': mission_id,
            'mission': mission.snapshot_dict()
        })

    @socketio.on('leave_mission')
    @websocket_auth_required
    def handle_leave_mission(data, user=None):
        """Leave the gameplay screen: stop the mission without scoring it."""
        mission_id = data.get('mission_id')
        if not mission_id:
            emit('error', {'error': 'Mission ID is required', 'error_code': 'invalid_input'})
            return

        leave_room(mission_room(mission_id))
        connected_players.pop(request.sid, None)

        mission_service = get_mission_service()
        result = mission_service.abandon_mission(mission_id, user['id']) if mission_service else None

        emit('mission_left', {
            'mission_id': mission_id,
            'abandoned': bool(result and result.get('abandoned'))
        })
