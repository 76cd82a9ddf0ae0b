from typing import Optional
from dataclasses import dataclass, field

@dataclass(frozen=True)
class PageSnapshot:
    text: str = ""
    file_name: str = ""

@dataclass
class PageBuffer:
    """The last two observed (file, text) pairs.

    A body update is pushed only while both slots name the same file, so a
    burst of edits interleaved with a focus change never injects content
    for the wrong document.
    """
    current: PageSnapshot = field(default_factory=PageSnapshot)
    previous: PageSnapshot = field(default_factory=PageSnapshot)

    def update_page(self, file_name: Optional[str], text: Optional[str]):
        if not file_name or not text:
            return
        self.previous = self.current
        self.current = PageSnapshot(text=text, file_name=file_name)

    def is_stable(self) -> bool:
        return self.current.file_name == self.previous.file_name

    def reset(self):
        self.current = PageSnapshot()
        self.previous = PageSnapshot()
