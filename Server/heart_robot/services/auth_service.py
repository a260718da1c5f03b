"""
Authentication Service

Handles player registration, login, logout, password hashing and JWT token
management using MongoDB for data storage.
"""

import bcrypt
import jwt
import datetime
import hashlib
import threading
from typing import Any, Callable, Dict, List, Optional

from bson.objectid import ObjectId
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..models.user import User
from ..utils.game_logger import game_logger

AuthListener = Callable[[str, Optional[Dict[str, Any]]], None]


class AuthService:
    """
    Authentication service for handling registration, login and token management.

    Listeners registered with subscribe() are told about every sign-in
    ("login") and sign-out ("logout").
    """

    def __init__(self, db, jwt_secret: str, jwt_expiration_days: int = 7):
        """
        Initialize the authentication service.

        Args:
            db: MongoDB database holding the users and active_sessions collections
            jwt_secret: Secret key for JWT token generation
            jwt_expiration_days: Token lifetime
        """
        self.jwt_secret = jwt_secret
        self.jwt_expiration_days = jwt_expiration_days
        self.users_collection = db.users
        self.sessions_collection = db.active_sessions
        self._listeners: List[AuthListener] = []
        self._listeners_lock = threading.Lock()

        # Create unique index on email
        self.users_collection.create_index("email", unique=True)

        # Create indexes for sessions collection
        self.sessions_collection.create_index("token_hash", unique=True)
        self.sessions_collection.create_index("user_id")
        self.sessions_collection.create_index("expires_at", expireAfterSeconds=0)  # TTL index

    def hash_password(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password as string
        """
        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
        return hashed.decode('utf-8')

    def verify_password(self, password: str, hashed_password: str) -> bool:
        """Verify a password against its hash."""
        return bcrypt.checkpw(password.encode('utf-8'), hashed_password.encode('utf-8'))

    def _hash_token(self, token: str) -> str:
        """SHA256 hash of a token, stored instead of the token itself."""
        return hashlib.sha256(token.encode('utf-8')).hexdigest()

    def _to_user(self, doc: Dict[str, Any]) -> User:
        return User(
            id=str(doc["_id"]),
            name=doc.get("name") or doc.get("email", "").split("@")[0],
            email=doc.get("email", ""),
            role=doc.get("role", "player"),
            created_at=doc.get("created_at"),
            last_login=doc.get("last_login")
        )

    def _public_user(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        user = self._to_user(doc)
        return {"id": user.id, "name": user.name, "email": user.email, "role": user.role}

    def _create_session(self, user_id: str, token: str) -> bool:
        """
        Create an active session record for a freshly issued token.

        Returns:
            True if session created successfully
        """
        try:
            now = datetime.datetime.now(datetime.timezone.utc)
            self.sessions_collection.insert_one({
                "user_id": user_id,
                "token_hash": self._hash_token(token),
                "created_at": now,
                "expires_at": now + datetime.timedelta(days=self.jwt_expiration_days)
            })
            return True

        except PyMongoError as e:
            game_logger.logger.error(f"Error creating session: {e}")
            return False

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """
        Register a sign-in/sign-out listener.

        Returns:
            Function that removes the listener
        """
        with self._listeners_lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._listeners_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: str, user: Optional[Dict[str, Any]]) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, user)
            except Exception as e:
                game_logger.logger.error(f"Auth listener failed on '{event}': {e}")

    def register_user(self, name: str, email: str, password: str) -> Dict[str, Any]:
        """
        Register a new player.

        Args:
            name: Display name shown on the scoreboard
            email: Login email
            password: Chosen password

        Returns:
            Dictionary with success status and user or error
        """
        try:
            if not email or not password:
                return {"success": False, "error": "Email and password are required"}

            email = email.strip().lower()
            if "@" not in email:
                return {"success": False, "error": "Please enter a valid email address"}

            if len(password) < 6:
                return {"success": False, "error": "Password must be at least 6 characters long"}

            name = (name or "").strip() or email.split("@")[0]

            if self.users_collection.find_one({"email": email}):
                return {"success": False, "error": "An account with this email already exists"}

            user_doc = {
                "name": name,
                "email": email,
                "password": self.hash_password(password),
                "role": "player",
                "created_at": datetime.datetime.now(datetime.timezone.utc),
                "last_login": None
            }

            result = self.users_collection.insert_one(user_doc)
            user_doc["_id"] = result.inserted_id

            return {
                "success": True,
                "message": "User registered successfully",
                "user": self._public_user(user_doc)
            }

        except DuplicateKeyError:
            return {"success": False, "error": "An account with this email already exists"}
        except PyMongoError as e:
            return {"success": False, "error": f"Registration failed: {str(e)}"}

    def login_user(self, email: str, password: str) -> Dict[str, Any]:
        """
        Authenticate a player and issue a JWT token.

        Returns:
            Dictionary with success status, token and user, or error
        """
        try:
            if not email or not password:
                return {"success": False, "error": "Email and password are required"}

            email = email.strip().lower()

            user = self.users_collection.find_one({"email": email})
            if not user or not self.verify_password(password, user["password"]):
                return {"success": False, "error": "Invalid email or password"}

            user_id = str(user["_id"])
            now = datetime.datetime.now(datetime.timezone.utc)

            self.users_collection.update_one(
                {"_id": user["_id"]},
                {"$set": {"last_login": now}}
            )

            token_payload = {
                "user_id": user_id,
                "name": user.get("name"),
                "jti": hashlib.sha256(f"{user_id}:{now.timestamp()}".encode('utf-8')).hexdigest()[:16],
                "exp": now + datetime.timedelta(days=self.jwt_expiration_days)
            }
            token = jwt.encode(token_payload, self.jwt_secret, algorithm="HS256")

            if not self._create_session(user_id, token):
                return {"success": False, "error": "Failed to create session"}

            public_user = self._public_user(user)
            self._notify('login', public_user)

            return {
                "success": True,
                "token": token,
                "user": public_user
            }

        except PyMongoError as e:
            return {"success": False, "error": f"Login failed: {str(e)}"}

    def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verify a JWT token and check that its session was not logged out.

        Returns:
            Dictionary with success status and user data or error
        """
        try:
            if not token:
                return {"success": False, "error": "Token is required"}

            payload = jwt.decode(token, self.jwt_secret, algorithms=["HS256"])
            user_id = payload.get("user_id")

            if not user_id:
                return {"success": False, "error": "Invalid token payload"}

            session = self.sessions_collection.find_one({
                "user_id": user_id,
                "token_hash": self._hash_token(token),
                "expires_at": {"$gt": datetime.datetime.now(datetime.timezone.utc)}
            })
            if not session:
                return {"success": False, "error": "Session has expired or is invalid"}

            user = self.users_collection.find_one({"_id": ObjectId(user_id)})
            if not user:
                return {"success": False, "error": "User not found"}

            return {"success": True, "user": self._public_user(user)}

        except jwt.ExpiredSignatureError:
            return {"success": False, "error": "Token has expired"}
        except jwt.InvalidTokenError:
            return {"success": False, "error": "Invalid token"}
        except InvalidId:
            return {"success": False, "error": "Invalid token payload"}
        except PyMongoError as e:
            return {"success": False, "error": f"Token verification failed: {str(e)}"}

    def current_user(self, token: str) -> Optional[Dict[str, Any]]:
        """The signed-in player for a token, or None."""
        result = self.verify_token(token)
        return result["user"] if result["success"] else None

    def logout_user(self, token: str) -> Dict[str, Any]:
        """
        Logout by removing the token's session.

        Returns:
            Dictionary with success status
        """
        try:
            if not token:
                return {"success": False, "error": "Token is required"}

            user = self.current_user(token)
            result = self.sessions_collection.delete_one({"token_hash": self._hash_token(token)})
            if result.deleted_count == 0:
                return {"success": False, "error": "Session not found or already expired"}

            self._notify('logout', user)
            return {"success": True, "message": "Logged out successfully"}

        except PyMongoError as e:
            return {"success": False, "error": f"Logout failed: {str(e)}"}


# Global service instance
_auth_service = None


def get_auth_service() -> Optional[AuthService]:
    """Get the global auth service instance."""
    return _auth_service


def initialize_auth_service(db, jwt_secret: str, jwt_expiration_days: int = 7) -> Optional[AuthService]:
    """Initialize the global auth service instance."""
    global _auth_service
    try:
        _auth_service = AuthService(db, jwt_secret, jwt_expiration_days)
        return _auth_service
    except PyMongoError as e:
        game_logger.logger.error(f"Failed to initialize authentication service: {e}")
        _auth_service = None
        return None
