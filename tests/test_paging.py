import unittest

from drivebrowser.errors import NetworkError
from drivebrowser.paging import Page, paginate
from drivebrowser.util.cancellation import CancellationToken


class _Pages:
    def __init__(self, pages: list[list[int]]) -> None:
        self.pages = pages
        self.requested: list = []

    async def __call__(self, token):
        self.requested.append(token)
        index = int(token) if token else 0
        next_token = str(index + 1) if index + 1 < len(self.pages) else None
        return Page(items=[{"n": n} for n in self.pages[index]], next_page_token=next_token)


class TestPaginate(unittest.IsolatedAsyncioTestCase):
    async def test_reads_until_exhausted(self) -> None:
        fetch = _Pages([[1, 2], [3], [4, 5]])
        seen = []

        token = await paginate(fetch, lambda items: seen.extend(i["n"] for i in items))

        self.assertIsNone(token)
        self.assertEqual(seen, [1, 2, 3, 4, 5])
        self.assertEqual(fetch.requested, [None, "1", "2"])

    async def test_stops_at_minimum_and_returns_resume_token(self) -> None:
        fetch = _Pages([[1, 2], [3, 4], [5]])

        token = await paginate(fetch, lambda items: None, minimum_count=3)

        self.assertEqual(token, "2")
        self.assertEqual(fetch.requested, [None, "1"])

    async def test_resume_from_token(self) -> None:
        fetch = _Pages([[1], [2], [3]])
        seen = []

        await paginate(fetch, lambda items: seen.extend(i["n"] for i in items), page_token="1")

        self.assertEqual(seen, [2, 3])

    async def test_handler_count_is_used_for_minimum(self) -> None:
        fetch = _Pages([[1, 2, 3], [4, 5, 6], [7]])

        async def accept_one(items):
            return 1

        token = await paginate(fetch, accept_one, minimum_count=2)

        self.assertEqual(token, "2")

    async def test_cancel_returns_current_token(self) -> None:
        fetch = _Pages([[1], [2], [3]])
        cancel = CancellationToken()

        def handle(items):
            cancel.cancel()

        token = await paginate(fetch, handle, cancel_token=cancel)

        self.assertEqual(token, "1")
        self.assertEqual(fetch.requested, [None])

    async def test_errors_propagate(self) -> None:
        async def fetch(token):
            raise NetworkError("down")

        with self.assertRaises(NetworkError):
            await paginate(fetch, lambda items: None)


if __name__ == "__main__":
    unittest.main()
