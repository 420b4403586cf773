"""Error types raised by the progression core."""


class LeagueError(Exception):
    """Base class for all progression errors."""


class InvalidReward(LeagueError):
    """Reward amounts were negative, or granted nothing at all."""

    def __init__(self, xp: int, gems: int):
        self.xp = xp
        self.gems = gems
        super().__init__(f"Invalid reward: xp={xp}, gems={gems}")


class InsufficientFunds(LeagueError):
    """Purchase price exceeds the gem balance."""

    def __init__(self, price: int, balance: int):
        self.price = price
        self.balance = balance
        super().__init__(f"Price {price} exceeds balance {balance}")


class AlreadyOwned(LeagueError):
    """Item is already in the inventory."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item already owned: {item_id}")


class NotOwned(LeagueError):
    """Item must be in the inventory for this action."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item not owned: {item_id}")


class NotFound(LeagueError):
    """Unknown user, lesson, goal, item or badge id."""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"Unknown {kind}: {key}")


class AlreadyExists(LeagueError):
    """An account with this id was already provisioned."""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} already exists: {key}")


class PersistenceFailure(LeagueError):
    """The persistence collaborator failed to save a snapshot."""

    def __init__(self, user_id: str, reason: str):
        self.user_id = user_id
        self.reason = reason
        super().__init__(f"Failed to persist user {user_id}: {reason}")


class CorruptRecord(LeagueError):
    """A stored user record exists but cannot be read back."""

    def __init__(self, user_id: str, reason: str):
        self.user_id = user_id
        self.reason = reason
        super().__init__(f"Stored record for user {user_id} is unreadable")
