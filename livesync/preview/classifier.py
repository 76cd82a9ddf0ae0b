import re
from typing import Optional
from dataclasses import dataclass

STRUCTURAL_TAGS = re.compile(r"</head>|</body>|</html>", re.IGNORECASE | re.MULTILINE)
BODY_CONTENT = re.compile(r"<body[^>]*>(.*?)</body>", re.IGNORECASE | re.DOTALL)

@dataclass(frozen=True)
class FileClassification:
    is_markup: bool = False
    is_server_page: bool = False
    is_stylesheet: bool = False
    is_script: bool = False

    @property
    def is_previewable(self) -> bool:
        return self.is_markup or self.is_server_page

def classify(path: Optional[str]) -> FileClassification:
    """Classify a file by its (case-sensitive) extension"""
    if not path:
        return FileClassification()

    return FileClassification(
        is_markup=path.endswith('.html'),
        is_server_page=path.endswith('.php'),
        is_stylesheet=path.endswith('.css'),
        is_script=path.endswith('.js')
    )

def has_structural_tags(text: Optional[str]) -> bool:
    """Check for a closing head, body or html tag"""
    if not text:
        return False
    return STRUCTURAL_TAGS.search(text) is not None

def extract_body(text: str) -> str:
    """Return the inner content of the body element, or the text itself"""
    match = BODY_CONTENT.search(text)
    if match is None:
        return text
    return match.group(1)
