import logging
from typing import Optional

from .classifier import classify, has_structural_tags
from ..core.config_manager import PreviewConfig

logger = logging.getLogger(__name__)

def is_previewable(file: Optional[str]) -> bool:
    return classify(file).is_previewable

def should_navigate(file: Optional[str], text: Optional[str], config: PreviewConfig) -> bool:
    """Navigate only to .html and .php files that look like whole documents"""
    if not file or not text:
        return False
    if config.navigate is False:
        return False
    if not is_previewable(file):
        return False

    if not has_structural_tags(text):
        logger.info(f"File: {file} does not contain required HTML tags.")
        return False

    return config.navigate is True

def should_highlight(file: Optional[str], config: PreviewConfig) -> bool:
    return config.highlight is True and classify(file).is_markup

def should_inject_css(config: PreviewConfig) -> bool:
    # default: on
    return config.inject_css is not False

def should_inject_body(config: PreviewConfig) -> bool:
    # default: off
    return config.inject_body is True
