"""
Тесты для подтверждения загрузки
"""
import asyncio
import unittest

from outsaver.bot.confirmation import (
    ACCEPT,
    EXPIRED,
    NOT_AUTHOR,
    REJECT,
    RESOLVED,
    TIMEOUT,
    ConfirmationGate
)

KEY = (100, 5)
AUTHOR_ID = 42


class TestConfirmationGate(unittest.IsolatedAsyncioTestCase):
    """Тесты для ConfirmationGate"""

    def setUp(self):
        self.gate = ConfirmationGate()

    async def press_later(self, user_id, decision):
        # Ждём, пока обработчик сообщения начнёт ожидание
        while not self.gate.is_pending(KEY):
            await asyncio.sleep(0)
        return self.gate.resolve(KEY, user_id, decision)

    async def test_accept(self):
        press = asyncio.create_task(self.press_later(AUTHOR_ID, ACCEPT))
        decision = await self.gate.wait(KEY, AUTHOR_ID, timeout=5)

        self.assertEqual(decision, ACCEPT)
        self.assertEqual(await press, RESOLVED)
        self.assertFalse(self.gate.is_pending(KEY))

    async def test_reject(self):
        press = asyncio.create_task(self.press_later(AUTHOR_ID, REJECT))
        self.assertEqual(await self.gate.wait(KEY, AUTHOR_ID, timeout=5), REJECT)
        await press

    async def test_only_author_counts(self):
        """Тест: нажатие не автора игнорируется"""
        async def presses():
            foreign = await self.press_later(AUTHOR_ID + 1, ACCEPT)
            own = self.gate.resolve(KEY, AUTHOR_ID, REJECT)
            return foreign, own

        task = asyncio.create_task(presses())
        decision = await self.gate.wait(KEY, AUTHOR_ID, timeout=5)

        self.assertEqual(decision, REJECT)
        self.assertEqual(await task, (NOT_AUTHOR, RESOLVED))

    async def test_timeout(self):
        """Тест: без ответа наступает таймаут"""
        decision = await self.gate.wait(KEY, AUTHOR_ID, timeout=0.01)

        self.assertEqual(decision, TIMEOUT)
        self.assertFalse(self.gate.is_pending(KEY))
        self.assertEqual(self.gate.resolve(KEY, AUTHOR_ID, ACCEPT), EXPIRED)

    def test_unknown_key(self):
        self.assertEqual(self.gate.resolve(('nope', 1), AUTHOR_ID, ACCEPT), EXPIRED)


if __name__ == '__main__':
    unittest.main()
