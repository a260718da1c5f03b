"""
Heart Robot Game Server - Main Entry Point

This is the main entry point for the Heart Robot game server.
It initializes all services and starts the Flask-SocketIO application.
"""

from heart_robot import create_app
from heart_robot.config import Config, load_fallback_puzzles, validate_difficulty_profiles
from heart_robot.services.auth_service import initialize_auth_service
from heart_robot.services.clock import BackgroundScheduler
from heart_robot.services.database import connect_database
from heart_robot.services.mission_service import initialize_mission_service
from heart_robot.services.puzzle_service import FallbackPuzzleBank, HeartApiClient, PuzzleService
from heart_robot.services.score_service import initialize_score_service
from heart_robot.services.storage import initialize_local_storage
from heart_robot.utils.game_logger import game_logger
from heart_robot.websocket.handlers import make_socketio_notifier


def main():
    """Main function to initialize services and start the server."""
    try:
        print("Initializing services...")
        validate_difficulty_profiles()

        # Authentication and score storage share one MongoDB database
        auth_service = None
        score_service = None
        if Config.MONGO_URI and Config.JWT_SECRET:
            db = connect_database(Config.MONGO_URI, Config.MONGO_DB_NAME)
            auth_service = initialize_auth_service(db, Config.JWT_SECRET, Config.JWT_EXPIRATION_DAYS)
            score_service = initialize_score_service(db.scores, Config.SCOREBOARD_LIMIT, Config.USER_SCORES_LIMIT)
            print("✓ Authentication and score services initialized successfully")
        else:
            print("✗ MongoDB URI or JWT Secret not configured")

        stores = initialize_local_storage()

        fallback_puzzles = load_fallback_puzzles(Config.PUZZLE_FALLBACK_FILE)
        puzzle_service = PuzzleService(
            HeartApiClient(Config.PUZZLE_API_URL, Config.PUZZLE_API_TIMEOUT_SECONDS),
            stores['secrets'],
            FallbackPuzzleBank(fallback_puzzles) if fallback_puzzles else None
        )
        print(f"✓ Puzzle service initialized ({len(fallback_puzzles)} offline puzzles)")

        print("Creating Flask application...")
        app, socketio = create_app(Config)
        print("✓ Flask application created successfully")

        mission_service = initialize_mission_service(
            puzzle_service,
            stores['handoff'],
            BackgroundScheduler(socketio),
            score_service=score_service,
            notifier=make_socketio_notifier(socketio),
            settle_delay=Config.SETTLE_DELAY_SECONDS
        )
        if auth_service:
            auth_service.subscribe(mission_service.handle_auth_change)
        print("✓ Mission service initialized successfully")

        game_logger.logger.info("Heart Robot Server Starting")

        print(f"\nStarting Heart Robot Game Server on {Config.HOST}:{Config.PORT}")
        print(f"Debug mode: {Config.DEBUG}")
        print(f"Auth available: {auth_service is not None}")
        print("=" * 50)

        socketio.run(app, host=Config.HOST, port=Config.PORT, debug=Config.DEBUG)

    except KeyboardInterrupt:
        print("\nServer shutting down...")
        game_logger.logger.info("Heart Robot Server shutting down (KeyboardInterrupt)")
    except Exception as e:
        print(f"Error starting server: {e}")
        game_logger.logger.error(f"Error starting server: {e}")
        raise


if __name__ == '__main__':
    main()
