"""
Custom exceptions for the momentum backend.
Every exception carries the HTTP status and error code the API layer reports.
"""


class MomentumException(Exception):
    """Base exception for the momentum backend"""
    status_code = 500
    error_code = "internal_error"


class ValidationException(MomentumException):
    """Raised when input data is malformed or out of range"""
    status_code = 400
    error_code = "validation_error"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Validation error for {field}: {message}")


class InvalidTimestampException(ValidationException):
    """Raised when an activity is dated in the future"""
    error_code = "invalid_timestamp"

    def __init__(self, timestamp):
        self.timestamp = timestamp
        super().__init__("timestamp", f"{timestamp.isoformat()} is in the future")


class CapacityExceededException(MomentumException):
    """Raised when activating a goal would exceed the profile's goal slots"""
    status_code = 409
    error_code = "capacity_exceeded"

    def __init__(self, goal_slots: int):
        self.goal_slots = goal_slots
        super().__init__(
            f"All {goal_slots} goal slot(s) are in use. Deactivate a goal first."
        )


class ForbiddenException(MomentumException):
    """Raised when acting on a resource owned by someone else"""
    status_code = 403
    error_code = "forbidden"

    def __init__(self, message: str = "You are not allowed to perform this action"):
        super().__init__(message)


class AuthenticationException(MomentumException):
    """Raised when the caller identity is missing or unknown"""
    status_code = 401
    error_code = "not_authenticated"

    def __init__(self, message: str = "Missing caller identity"):
        super().__init__(message)


class NotFoundException(MomentumException):
    """Raised when a referenced entity does not exist"""
    status_code = 404
    error_code = "not_found"


class ProfileNotFoundException(NotFoundException):
    """Raised when a profile is not found"""
    def __init__(self, profile_ref: str):
        self.profile_ref = profile_ref
        super().__init__(f"Profile {profile_ref} not found")


class GoalNotFoundException(NotFoundException):
    """Raised when a goal is not found"""
    def __init__(self, goal_id: int):
        self.goal_id = goal_id
        super().__init__(f"Goal with ID {goal_id} not found")


class ActivityNotFoundException(NotFoundException):
    """Raised when a logged activity is not found (or not visible)"""
    def __init__(self, activity_id: int):
        self.activity_id = activity_id
        super().__init__(f"Activity with ID {activity_id} not found")


class FollowNotFoundException(NotFoundException):
    """Raised when no follow row (or no pending request) exists for a pair"""
    def __init__(self, follower_id: str, followed_id: str):
        self.follower_id = follower_id
        self.followed_id = followed_id
        super().__init__(f"No follow request from {follower_id} to {followed_id}")


class ConflictException(MomentumException):
    """Base for state-conflict errors"""
    status_code = 409
    error_code = "conflict"


class AlreadyRequestedException(ConflictException):
    """Raised when a follow request is already pending"""
    error_code = "already_requested"

    def __init__(self, target_id: str):
        self.target_id = target_id
        super().__init__(f"Follow request to {target_id} is already pending")


class AlreadyFollowingException(ConflictException):
    """Raised when the follow is already accepted"""
    error_code = "already_following"

    def __init__(self, target_id: str):
        self.target_id = target_id
        super().__init__(f"Already following {target_id}")


class AlreadyBumpedException(ConflictException):
    """Raised when a user bumps the same activity twice"""
    error_code = "already_bumped"

    def __init__(self, activity_id: int):
        self.activity_id = activity_id
        super().__init__(f"Activity {activity_id} is already bumped")


class NotBumpedException(ConflictException):
    """Raised when removing a bump that does not exist"""
    error_code = "not_bumped"

    def __init__(self, activity_id: int):
        self.activity_id = activity_id
        super().__init__(f"Activity {activity_id} is not bumped")


class UsernameNotAvailableException(ConflictException):
    """Raised when a username is already taken"""
    error_code = "username_not_available"

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Username '{username}' is not available")
