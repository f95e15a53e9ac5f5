from .buffer import Change, Edit, EditorBuffer

__all__ = ["Change", "Edit", "EditorBuffer"]
