"""
Криптография протокола MEGA

MEGA оперирует массивами 32-битных big-endian слов (a32) и base64 без паддинга
с алфавитом '-_'. Все ключи - AES-128.
"""
import base64
import json
import math
import struct
from typing import Iterator, Optional, Sequence, Tuple

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

ZERO_IV = b'\0' * 16

# Начальное значение ключа для аккаунтов v1
PREPARE_KEY_SEED = (0x93C467E3, 0x7DB0C7A4, 0xD1BE3F81, 0x0152CB56)

PBKDF2_ITERATIONS = 100000

A32 = Tuple[int, ...]


# ========== Преобразования ==========

def a32_to_bytes(a: Sequence[int]) -> bytes:
    return struct.pack('>%dI' % len(a), *a)


def bytes_to_a32(b: bytes) -> A32:
    if len(b) % 4:
        b += b'\0' * (4 - len(b) % 4)
    return struct.unpack('>%dI' % (len(b) // 4), b)


def base64_url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode('ascii').rstrip('=')


def base64_url_decode(data: str) -> bytes:
    data = data.replace(',', '')
    data += '=' * (-len(data) % 4)
    return base64.urlsafe_b64decode(data)


def base64_to_a32(data: str) -> A32:
    return bytes_to_a32(base64_url_decode(data))


def a32_to_base64(a: Sequence[int]) -> str:
    return base64_url_encode(a32_to_bytes(a))


def mpi_to_int(data: bytes) -> int:
    """MPI: 2 байта длины в битах, затем big-endian число"""
    return int.from_bytes(data[2:], 'big')


# ========== AES ==========

def aes_ecb_encrypt(data: bytes, key: bytes) -> bytes:
    encryptor = Cipher(algorithms.AES(key), modes.ECB()).encryptor()
    return encryptor.update(data) + encryptor.finalize()


def aes_ecb_decrypt(data: bytes, key: bytes) -> bytes:
    decryptor = Cipher(algorithms.AES(key), modes.ECB()).decryptor()
    return decryptor.update(data) + decryptor.finalize()


def aes_cbc_encrypt(data: bytes, key: bytes, iv: bytes = ZERO_IV) -> bytes:
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return encryptor.update(data) + encryptor.finalize()


def aes_cbc_decrypt(data: bytes, key: bytes, iv: bytes = ZERO_IV) -> bytes:
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    return decryptor.update(data) + decryptor.finalize()


def encrypt_key(a: Sequence[int], key: Sequence[int]) -> A32:
    """Зашифровать ключ (кратный 4 словам) другим ключом, каждый блок отдельно"""
    return bytes_to_a32(aes_ecb_encrypt(a32_to_bytes(a), a32_to_bytes(key)))


def decrypt_key(a: Sequence[int], key: Sequence[int]) -> A32:
    return bytes_to_a32(aes_ecb_decrypt(a32_to_bytes(a), a32_to_bytes(key)))


# ========== Вход в аккаунт ==========

def prepare_key(password: A32) -> A32:
    """Ключ из пароля для аккаунтов v1 (65536 раундов AES)"""
    keys = []
    for j in range(0, len(password), 4):
        block = list(password[j:j + 4]) + [0] * (4 - len(password[j:j + 4]))
        keys.append(Cipher(algorithms.AES(a32_to_bytes(block)), modes.ECB()).encryptor())

    pkey = a32_to_bytes(PREPARE_KEY_SEED)
    for _ in range(0x10000):
        for encryptor in keys:
            pkey = encryptor.update(pkey)
    return bytes_to_a32(pkey)


def string_hash(text: str, key: A32) -> str:
    """Хэш email для аккаунтов v1"""
    h32 = [0, 0, 0, 0]
    for i, word in enumerate(bytes_to_a32(text.encode('utf-8'))):
        h32[i % 4] ^= word

    encryptor = Cipher(algorithms.AES(a32_to_bytes(key)), modes.ECB()).encryptor()
    h = a32_to_bytes(h32)
    for _ in range(0x4000):
        h = encryptor.update(h)
    h32 = bytes_to_a32(h)
    return a32_to_base64((h32[0], h32[2]))


def derive_v2_key(password: str, salt: bytes) -> Tuple[A32, str]:
    """
    Ключ и хэш пользователя для аккаунтов v2

    Returns:
        (ключ для расшифровки мастер-ключа, user hash для команды 'us')
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA512(),
        length=32,
        salt=salt,
        iterations=PBKDF2_ITERATIONS
    )
    derived = kdf.derive(password.encode('utf-8'))
    return bytes_to_a32(derived[:16]), base64_url_encode(derived[16:])


def decode_rsa_private_key(private_key: bytes) -> Tuple[int, int, int]:
    """
    Разобрать приватный ключ RSA аккаунта: p, q, d, u подряд в формате MPI

    Returns:
        (модуль n, приватная экспонента d, p)
    """
    integers = []
    for _ in range(4):
        bit_length = (private_key[0] << 8) + private_key[1]
        byte_length = math.ceil(bit_length / 8) + 2
        integers.append(mpi_to_int(private_key[:byte_length]))
        private_key = private_key[byte_length:]
    p, q, d, _u = integers
    return p * q, d, p


def rsa_decrypt_sid(csid: str, private_key: bytes) -> str:
    """Расшифровать session id, выданный в виде csid"""
    n, d, _p = decode_rsa_private_key(private_key)
    encrypted = mpi_to_int(base64_url_decode(csid))
    decrypted = pow(encrypted, d, n)
    raw = decrypted.to_bytes((decrypted.bit_length() + 7) // 8, 'big')
    return base64_url_encode(raw[:43])


# ========== Атрибуты узлов ==========

def encrypt_attr(attr: dict, key: Sequence[int]) -> bytes:
    data = ('MEGA' + json.dumps(attr)).encode('utf-8')
    if len(data) % 16:
        data += b'\0' * (16 - len(data) % 16)
    return aes_cbc_encrypt(data, a32_to_bytes(key))


def decrypt_attr(data: bytes, key: Sequence[int]) -> Optional[dict]:
    """Атрибуты узла или None, если ключ не подошёл"""
    if not data or len(data) % 16:
        return None
    raw = aes_cbc_decrypt(data, a32_to_bytes(key)).rstrip(b'\0')
    if not raw.startswith(b'MEGA{"'):
        return None
    try:
        return json.loads(raw[4:].decode('utf-8'))
    except (UnicodeDecodeError, ValueError):
        return None


def file_key_to_aes(key: Sequence[int]) -> A32:
    """8-словный ключ файла -> AES-ключ атрибутов"""
    return (key[0] ^ key[4], key[1] ^ key[5], key[2] ^ key[6], key[3] ^ key[7])


# ========== Загрузка файлов ==========

def get_chunks(size: int) -> Iterator[Tuple[int, int]]:
    """
    Разбиение файла на чанки MEGA: 128 КБ, 256 КБ, ... до 1 МБ, дальше по 1 МБ

    Yields:
        (смещение, размер чанка)
    """
    position = 0
    chunk_size = 0x20000
    while position + chunk_size < size:
        yield position, chunk_size
        position += chunk_size
        if chunk_size < 0x100000:
            chunk_size += 0x20000
    yield position, size - position


class UploadEncryptor:
    """
    Шифрование файла при загрузке: AES-CTR для данных и CBC-MAC для контроля целостности

    Чанки нужно подавать по порядку, как их отдаёт get_chunks().
    """

    def __init__(self, upload_key: Sequence[int]):
        """
        Args:
            upload_key: 6 случайных 32-битных слов: 4 слова ключа и 2 слова nonce
        """
        self.upload_key = tuple(upload_key)
        self._key = a32_to_bytes(self.upload_key[:4])
        nonce = self.upload_key[4:6]
        self._ctr = Cipher(algorithms.AES(self._key), modes.CTR(a32_to_bytes([nonce[0], nonce[1], 0, 0]))).encryptor()
        self._chunk_iv = a32_to_bytes([nonce[0], nonce[1], nonce[0], nonce[1]])
        self._mac = Cipher(algorithms.AES(self._key), modes.CBC(ZERO_IV)).encryptor()
        self._file_mac = ZERO_IV

    def encrypt_chunk(self, chunk: bytes) -> bytes:
        if not chunk:
            return b''
        padded = chunk + b'\0' * (-len(chunk) % 16)
        chunk_mac = aes_cbc_encrypt(padded, self._key, self._chunk_iv)[-16:]
        self._file_mac = self._mac.update(chunk_mac)
        return self._ctr.update(chunk)

    def meta_mac(self) -> Tuple[int, int]:
        mac = bytes_to_a32(self._file_mac)
        return mac[0] ^ mac[1], mac[2] ^ mac[3]

    def node_key(self) -> A32:
        """8-словный ключ нового узла (ещё не зашифрованный мастер-ключом)"""
        k = self.upload_key
        meta_mac = self.meta_mac()
        return (
            k[0] ^ k[4], k[1] ^ k[5], k[2] ^ meta_mac[0], k[3] ^ meta_mac[1],
            k[4], k[5], meta_mac[0], meta_mac[1]
        )
