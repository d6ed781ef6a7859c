from .user import User  # noqa: F401
from .highlight import Highlight  # noqa: F401
from .note import Note, NoteType  # noqa: F401
from .article import Article  # noqa: F401
