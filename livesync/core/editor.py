import os
from enum import Enum
from typing import List, Optional, Any
from dataclasses import dataclass

class EditorEventType(Enum):
    ACTIVE_EDITOR_CHANGED = "active_editor_changed"
    SELECTION_CHANGED = "selection_changed"
    DOCUMENT_SAVED = "document_saved"
    DOCUMENT_CHANGED = "document_changed"

@dataclass
class Position:
    line: int
    column: int

@dataclass
class EditorEvent:
    type: EditorEventType
    file_name: Optional[str] = None
    text: Optional[str] = None

@dataclass
class FileStat:
    is_file: bool
    is_dir: bool

class EditorView:
    """A visible editor pane showing one document"""

    def __init__(self, file_name: str, text: str = "", cursor: Optional[Position] = None):
        self.file_name = file_name
        self.text = text
        self.cursor = cursor
        self.decorations: List[Any] = []

    def set_decorations(self, decorations: List[Any]):
        self.decorations = list(decorations)

class EditorHost:
    """Host editor collaborator.

    Supplies the workspace root, the visible and active editor views, editor
    settings and a non-modal information channel. Subclass it to bind a real
    editor; the base class keeps everything in memory.
    """

    def __init__(self, workspace: Optional[str] = None, settings: Optional[dict] = None,
                 dark_theme: bool = True):
        self.workspace = workspace
        self.settings = dict(settings or {})
        self.dark_theme = dark_theme
        self.views: List[EditorView] = []
        self.active: Optional[EditorView] = None
        self.messages: List[str] = []

    def workspace_root(self) -> Optional[str]:
        return self.workspace

    def visible_editors(self) -> List[EditorView]:
        return list(self.views)

    def active_editor(self) -> Optional[EditorView]:
        return self.active

    def get_settings(self) -> dict:
        return dict(self.settings)

    def is_dark_theme(self) -> bool:
        return self.dark_theme

    def show_information(self, message: str):
        self.messages.append(message)

    async def stat(self, path: str) -> Optional[FileStat]:
        if not os.path.exists(path):
            return None
        return FileStat(is_file=os.path.isfile(path), is_dir=os.path.isdir(path))
