import hashlib
import hmac
import secrets


def hash_password(password: str, salt: str = None) -> str:
    """비밀번호를 salt와 함께 SHA-256으로 해시하여 'salt$digest' 형태로 반환합니다."""
    salt = salt or secrets.token_hex(8)
    digest = hashlib.sha256(f"{salt}{password}".encode('utf-8')).hexdigest()
    return f"{salt}${digest}"


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash or '$' not in password_hash:
        return False
    salt, _ = password_hash.split('$', 1)
    return hmac.compare_digest(hash_password(password, salt), password_hash)
