"""
MegaApiClient - низкоуровневый клиент командного API MEGA

Ответственность:
- Вход в аккаунт и хранение session id / мастер-ключа
- Получение списка узлов с расшифровкой имён
- Загрузка файла с шифрованием
- Перемещение узлов и выход

НЕ знает о пакетах, Telegram и outplayed.tv.
НЕ потокобезопасен: сериализацией вызовов занимается StorageSession.
"""
import asyncio
import json
import logging
import secrets
from typing import Any, BinaryIO, Callable, Dict, List, Optional

import aiohttp

from outsaver.exceptions import OutsaverError
from outsaver.models.remote_node import NodeKind, RemoteNode
from .crypto import (
    A32,
    UploadEncryptor,
    a32_to_base64,
    a32_to_bytes,
    base64_to_a32,
    base64_url_decode,
    base64_url_encode,
    bytes_to_a32,
    decrypt_attr,
    decrypt_key,
    derive_v2_key,
    encrypt_attr,
    encrypt_key,
    file_key_to_aes,
    get_chunks,
    prepare_key,
    rsa_decrypt_sid,
    string_hash
)

logger = logging.getLogger(__name__)

API_URL = 'https://g.api.mega.co.nz/cs'

# Имена служебных корневых узлов
SPECIAL_NODE_NAMES = {
    NodeKind.ROOT: 'Cloud Drive',
    NodeKind.INBOX: 'Inbox',
    NodeKind.TRASH: 'Rubbish Bin',
}

ERROR_DESCRIPTIONS = {
    -1: 'внутренняя ошибка сервера',
    -2: 'неверные аргументы',
    -3: 'сервер перегружен, повторите запрос',
    -4: 'превышен лимит запросов',
    -6: 'слишком много соединений',
    -8: 'ресурс истёк',
    -9: 'объект не найден',
    -11: 'доступ запрещён',
    -13: 'загрузка не завершена',
    -14: 'ошибка расшифровки',
    -15: 'сессия недействительна',
    -16: 'аккаунт заблокирован',
    -17: 'превышена квота хранилища',
    -18: 'ресурс временно недоступен',
    -26: 'требуется двухфакторная аутентификация',
}

ProgressCallback = Callable[[int], None]


class MegaApiError(OutsaverError):
    """Ошибка протокола MEGA (отрицательный код ответа или некорректный ответ)"""

    def __init__(self, code: Optional[int], message: Optional[str] = None):
        if message is None:
            message = ERROR_DESCRIPTIONS.get(code, 'неизвестная ошибка')
        super().__init__(f"MEGA: {message}" + (f" (код {code})" if code is not None else ""))
        self.code = code


def _error_code(text: str) -> Optional[int]:
    """Код ошибки из ответа сервера загрузки ('-3'), None если это не ошибка"""
    stripped = text.strip()
    if stripped.startswith('-') and stripped[1:].isdigit():
        return int(stripped)
    return None


class MegaApiClient:
    """Клиент командного API MEGA поверх общей aiohttp-сессии"""

    def __init__(self, http: aiohttp.ClientSession, api_url: str = API_URL):
        """
        Args:
            http: Общая HTTP-сессия процесса
            api_url: Адрес командного API
        """
        self.http = http
        self.api_url = api_url
        self.sequence_num = secrets.randbelow(0xFFFFFFFF)
        self.request_id = secrets.token_hex(5)
        self.sid: Optional[str] = None
        self.master_key: Optional[A32] = None
        self.user_handle: Optional[str] = None

    @property
    def is_logged_in(self) -> bool:
        return self.sid is not None

    async def request(self, command: Dict[str, Any]) -> Any:
        """
        Выполнить одну команду API

        Returns:
            Ответ на команду (dict, list или 0)

        Raises:
            MegaApiError: если сервер вернул код ошибки
            aiohttp.ClientError: при ошибке транспорта
        """
        params = {'id': self.sequence_num}
        self.sequence_num += 1
        if self.sid:
            params['sid'] = self.sid

        async with self.http.post(self.api_url, params=params, data=json.dumps([command])) as response:
            if response.status >= 400:
                raise MegaApiError(None, f"HTTP {response.status} на команду '{command.get('a')}'")
            text = await response.text()

        try:
            result = json.loads(text)
        except ValueError:
            raise MegaApiError(None, f"некорректный ответ на команду '{command.get('a')}'")

        # Ошибка всего запроса приходит числом, ошибка команды - числом внутри массива
        if isinstance(result, list):
            result = result[0] if result else None
        if isinstance(result, int) and result < 0:
            raise MegaApiError(result)
        return result

    # ========== Вход ==========

    async def login(self, email: str, password: str):
        """
        Войти в аккаунт по email и паролю

        Raises:
            MegaApiError: неверные данные или ошибка протокола
        """
        email = email.lower()
        prelogin = await self.request({'a': 'us0', 'user': email})
        salt = prelogin.get('s') if isinstance(prelogin, dict) else None

        if salt:
            password_key, user_hash = await asyncio.to_thread(
                derive_v2_key, password, base64_url_decode(salt)
            )
        else:
            # Аккаунт старого формата (v1)
            password_key = await asyncio.to_thread(prepare_key, bytes_to_a32(password.encode('utf-8')))
            user_hash = string_hash(email, password_key)

        response = await self.request({'a': 'us', 'user': email, 'uh': user_hash})
        if not isinstance(response, dict) or 'k' not in response:
            raise MegaApiError(None, 'некорректный ответ на вход')
        try:
            self._process_login(response, password_key)
        except (ValueError, KeyError, IndexError) as e:
            raise MegaApiError(None, f'некорректный ответ на вход: {e}') from e

        if not self.user_handle:
            user = await self.request({'a': 'ug'})
            self.user_handle = user.get('u') if isinstance(user, dict) else None
        logger.info(f"[mega] Вход выполнен, пользователь {self.user_handle}")

    def _process_login(self, response: Dict[str, Any], password_key: A32):
        master_key = decrypt_key(base64_to_a32(response['k']), password_key)

        if 'tsid' in response:
            tsid = base64_url_decode(response['tsid'])
            check = a32_to_bytes(encrypt_key(bytes_to_a32(tsid[:16]), master_key))
            if check != tsid[-16:]:
                raise MegaApiError(None, 'неверный пароль')
            sid = response['tsid']
        elif 'csid' in response:
            private_key = a32_to_bytes(decrypt_key(base64_to_a32(response['privk']), master_key))
            sid = rsa_decrypt_sid(response['csid'], private_key)
        else:
            raise MegaApiError(None, 'сервер не выдал session id')

        self.master_key = master_key
        self.sid = sid
        self.user_handle = response.get('u')

    # ========== Узлы ==========

    async def fetch_nodes(self) -> List[RemoteNode]:
        """Все собственные узлы аккаунта (полный запрос дерева, без кэша)"""
        response = await self.request({'a': 'f', 'c': 1, 'r': 1})
        if not isinstance(response, dict) or not isinstance(response.get('f', []), list):
            raise MegaApiError(None, 'некорректный ответ на запрос списка узлов')

        nodes = []
        for raw in response.get('f', []):
            if not isinstance(raw, dict):
                continue
            node = self._process_node(raw)
            if node is not None:
                nodes.append(node)
        logger.info(f"[mega] Получено узлов: {len(nodes)}")
        return nodes

    def _process_node(self, raw: Dict[str, Any]) -> Optional[RemoteNode]:
        kind = raw.get('t')
        handle = raw.get('h')
        parent = raw.get('p') or None

        if kind in SPECIAL_NODE_NAMES:
            return RemoteNode(handle=handle, name=SPECIAL_NODE_NAMES[kind], kind=kind, parent_handle=parent)
        if kind not in (NodeKind.FILE, NodeKind.FOLDER):
            return None

        key = self._decrypt_node_key(raw.get('k', ''), kind)
        if key is None:
            return None
        attr_key = file_key_to_aes(key) if kind == NodeKind.FILE else key
        try:
            attrs = decrypt_attr(base64_url_decode(raw.get('a', '')), attr_key)
        except ValueError:
            attrs = None
        if attrs is None:
            logger.warning(f"[mega] ⚠️ Не удалось расшифровать атрибуты узла {handle}")
            return None

        return RemoteNode(
            handle=handle,
            name=attrs.get('n', ''),
            kind=kind,
            parent_handle=parent,
            size=raw.get('s', 0)
        )

    def _decrypt_node_key(self, key_field: str, kind: int) -> Optional[A32]:
        """Ключ узла, зашифрованный нашим мастер-ключом; чужие (расшаренные) узлы пропускаются"""
        if not isinstance(key_field, str):
            return None
        parts = dict(part.split(':', 1) for part in key_field.split('/') if ':' in part)
        encrypted = parts.get(self.user_handle)
        if not encrypted:
            return None
        try:
            key = decrypt_key(base64_to_a32(encrypted), self.master_key)
        except ValueError:
            # Длина ключа не кратна блоку AES или base64 испорчен
            logger.warning(f"[mega] ⚠️ Некорректный ключ узла: {key_field!r}")
            return None
        expected_length = 8 if kind == NodeKind.FILE else 4
        if len(key) < expected_length:
            return None
        return key[:expected_length]

    # ========== Загрузка ==========

    async def upload(
        self,
        reader: BinaryIO,
        size: int,
        name: str,
        destination_handle: str,
        progress: Optional[ProgressCallback] = None
    ) -> str:
        """
        Зашифровать и загрузить файл в папку destination_handle

        Args:
            reader: Открытый на чтение файл
            size: Размер файла в байтах
            name: Имя нового узла
            destination_handle: handle папки назначения
            progress: Вызывается после каждого чанка с числом отправленных байт

        Returns:
            handle созданного узла

        Raises:
            MegaApiError, aiohttp.ClientError: ошибка передачи
            OSError: ошибка чтения локального файла
        """
        response = await self.request({'a': 'u', 's': size})
        upload_url = response.get('p') if isinstance(response, dict) else None
        if not upload_url:
            raise MegaApiError(None, 'сервер не выдал адрес для загрузки')
        encryptor = UploadEncryptor([secrets.randbits(32) for _ in range(6)])

        completion_handle = None
        transferred = 0
        for offset, chunk_size in get_chunks(size):
            chunk = await asyncio.to_thread(reader.read, chunk_size)
            if len(chunk) != chunk_size:
                raise MegaApiError(None, f"файл изменился во время загрузки ({name})")

            async with self.http.post(f"{upload_url}/{offset}", data=encryptor.encrypt_chunk(chunk)) as response:
                if response.status >= 400:
                    raise MegaApiError(None, f"HTTP {response.status} при загрузке чанка {offset}")
                text = await response.text()

            code = _error_code(text)
            if code is not None:
                raise MegaApiError(code)
            if text:
                completion_handle = text

            transferred += len(chunk)
            if progress is not None:
                progress(transferred)

        if not completion_handle:
            raise MegaApiError(None, 'сервер не подтвердил загрузку файла')

        attributes = base64_url_encode(encrypt_attr({'n': name}, encryptor.upload_key[:4]))
        node_key = a32_to_base64(encrypt_key(encryptor.node_key(), self.master_key))
        response = await self.request({
            'a': 'p',
            't': destination_handle,
            'i': self.request_id,
            'n': [{'h': completion_handle, 't': NodeKind.FILE, 'a': attributes, 'k': node_key}]
        })
        try:
            return response['f'][0]['h']
        except (KeyError, IndexError, TypeError):
            raise MegaApiError(None, 'сервер не вернул созданный узел')

    # ========== Перемещение и выход ==========

    async def move(self, handle: str, target_handle: str):
        await self.request({'a': 'm', 'n': handle, 't': target_handle, 'i': self.request_id})

    async def logout(self):
        """Завершить сессию на сервере; локальные ключи забываются в любом случае"""
        try:
            await self.request({'a': 'sml'})
        finally:
            self.sid = None
            self.master_key = None
            self.user_handle = None
