"""ORM models; importing this package registers every table on Base.metadata."""
from materix.models.user import User, Provider  # noqa: F401
from materix.models.friend_pair import FriendPair, PairStatus  # noqa: F401
from materix.models.free_time import FreeTime, FreeTimeViewer, Visibility  # noqa: F401
