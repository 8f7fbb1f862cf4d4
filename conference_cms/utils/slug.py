# conference_cms/utils/slug.py
import re
import unicodedata


def slugify(text: str, separator: str = "-") -> str:
    """
    제목/이름을 URL에 안전한 slug로 변환합니다.
    ASCII로 음역한 뒤 소문자로 바꾸고, 영숫자가 아닌 문자 구간을 구분자로 치환합니다.
    (예: 'Gödöllő Summit 2025' -> 'godollo-summit-2025')
    """
    if not text:
        return ""
    text = unicodedata.normalize("NFKD", str(text)).encode("ascii", "ignore").decode("ascii")
    text = text.lower().replace("@", " at ")
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[-\s_]+", separator, text)
    return text.strip(separator)
