import base64
import hashlib

from cryptography.fernet import Fernet


def get_fernet(encryption_key: str = None, secret_key: str = None) -> Fernet:
    """
    Returns a Fernet instance for the configured key.
    Without an explicit Fernet key, one is derived from the application secret key.
    """
    if encryption_key:
        return Fernet(encryption_key.encode('utf-8'))
    if not secret_key:
        raise ValueError("Either encryption_key or secret_key is required")
    derived = base64.urlsafe_b64encode(hashlib.sha256(secret_key.encode('utf-8')).digest())
    return Fernet(derived)

def encrypt_data(data: str, fernet: Fernet) -> str:
    """Encrypts a string using Fernet."""
    return fernet.encrypt(data.encode('utf-8')).decode('utf-8')

def decrypt_data(encrypted_data: str, fernet: Fernet) -> str:
    """Decrypts a string using Fernet."""
    return fernet.decrypt(encrypted_data.encode('utf-8')).decode('utf-8')
