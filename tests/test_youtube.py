"""
Unit tests for YouTube link parsing.
"""

import pytest

from academy.services.youtube import extract_video_id, thumbnail_url

VIDEO = "dQw4w9WgXcQ"


@pytest.mark.parametrize("url", [
    f"https://www.youtube.com/watch?v={VIDEO}",
    f"https://youtube.com/watch?v={VIDEO}&t=42s",
    f"https://m.youtube.com/watch?feature=share&v={VIDEO}",
    f"https://youtu.be/{VIDEO}",
    f"https://youtu.be/{VIDEO}?si=abc",
    f"https://www.youtube.com/embed/{VIDEO}",
    f"https://www.youtube.com/shorts/{VIDEO}",
    f"https://www.youtube.com/live/{VIDEO}?feature=shared",
    f"youtube.com/watch?v={VIDEO}",
])
def test_extracts_id(url):
    assert extract_video_id(url) == VIDEO


@pytest.mark.parametrize("url", [
    "",
    None,
    "https://vimeo.com/123456",
    "https://www.youtube.com/watch?v=short",
    "https://www.youtube.com/channel/UC1234567890",
    f"https://evil.example.com/watch?v={VIDEO}",
])
def test_rejects_other_links(url):
    assert extract_video_id(url) is None


def test_thumbnail():
    assert thumbnail_url(VIDEO) == f"https://img.youtube.com/vi/{VIDEO}/hqdefault.jpg"
