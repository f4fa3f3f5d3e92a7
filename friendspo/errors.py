"""Domain errors raised by the service layer.

They subclass ValueError so the global handler still turns anything we
forget to catch into a 400 rather than a 500.
"""


class FriendspoError(ValueError):
    pass


class NotFoundError(FriendspoError):
    """Referenced session, user, request or league does not exist."""


class ValidationError(FriendspoError):
    """The request is well-formed but not allowed in the current state."""


class AlreadyFriendsError(ValidationError):
    def __init__(self, message: str = "Already friends"):
        super().__init__(message)


class FriendRequestExistsError(ValidationError):
    def __init__(self, message: str = "Friend request already sent"):
        super().__init__(message)


class AlreadyMemberError(ValidationError):
    def __init__(self, message: str = "You are already in this league"):
        super().__init__(message)


class ActiveSessionExistsError(ValidationError):
    def __init__(self, message: str = "A session is already in progress"):
        super().__init__(message)


class NicknameTakenError(ValidationError):
    def __init__(self, message: str = "Nickname already taken"):
        super().__init__(message)


class ProfileExistsError(ValidationError):
    def __init__(self, message: str = "Profile already exists"):
        super().__init__(message)
