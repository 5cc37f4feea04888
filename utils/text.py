import re

TAG_REGEX = re.compile(r'<.*?>')


def strip_html(text):
    """Remove HTML tags (summernote markup) and collapse whitespace."""
    if not text:
        return text
    clean = TAG_REGEX.sub('', str(text))
    return ' '.join(clean.split())
