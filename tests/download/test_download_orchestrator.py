import os
import tempfile
import unittest

from fakes import MIB, FakeTransport, RecordingObserver, ScriptedPrompter, file, folder

from drivebrowser.cache import FileCache
from drivebrowser.config import BrowserConfig
from drivebrowser.download import (
    ConflictChoice,
    ConflictPolicy,
    DownloadOrchestrator,
    normalize_download_set,
)
from drivebrowser.errors import AbusiveFileError, ExportSizeLimitError, NetworkError
from drivebrowser.models import ChildrenState, FileNode
from drivebrowser.util.busy import OperationLock
from drivebrowser.util.cancellation import CancellationToken


class TestNormalizeDownloadSet(unittest.TestCase):
    def setUp(self) -> None:
        self.cache = FileCache()
        self.cache.put(FileNode(id="P", name="parent", is_folder=True))
        self.cache.put(FileNode(id="C1", name="child", parent_id="P"))
        self.cache.put(FileNode(id="C2", name="other", parent_id="P"))
        self.cache.put(FileNode(id="X", name="x"))

    def _ids(self, ids):
        return [n.id for n in normalize_download_set(self.cache, ids)]

    def test_ancestor_after_child_replaces_child(self) -> None:
        self.assertEqual(self._ids(["C1", "P"]), ["P"])

    def test_child_after_ancestor_is_dropped(self) -> None:
        self.assertEqual(self._ids(["P", "C1", "C2"]), ["P"])

    def test_duplicates_and_blanks(self) -> None:
        self.assertEqual(self._ids(["X", "", "X", "C1"]), ["X", "C1"])

    def test_normalizing_twice_changes_nothing(self) -> None:
        self.cache.put(FileNode(id="G", name="grandchild", parent_id="C1"))
        selections = [
            ["G", "C1", "X", "C1"],
            ["C2", "G", "P", "X"],
            ["X", "", "G", "C2"],
            ["G", "X", "C1"],
        ]
        for ids in selections:
            once = self._ids(ids)
            self.assertEqual(self._ids(once), once, ids)

    def test_uncached_ids_are_ignored(self) -> None:
        with self.assertLogs("drivebrowser.download.orchestrator", level="WARNING"):
            self.assertEqual(self._ids(["nope", "X"]), ["X"])


class _OrchestratorCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.target = self._tmp.name
        self.transport = FakeTransport()
        self.cache = FileCache(self.transport)
        self.prompter = ScriptedPrompter()
        self.lock = OperationLock()
        self.finished_dirs: list[str] = []
        self.orchestrator = DownloadOrchestrator(
            self.cache,
            self.transport,
            self.prompter,
            config=BrowserConfig(thumbnails_dir=os.path.join(self.target, ".thumbs")),
            operation_lock=self.lock,
            on_finished=self.finished_dirs.append,
        )

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def cached(self, data: dict, content: bytes | None = None) -> FileNode:
        self.transport.add(data, content)
        return self.cache.put(FileNode.from_api(data))

    def read(self, *parts: str) -> bytes:
        with open(os.path.join(self.target, *parts), "rb") as f:
            return f.read()


class TestDownloadOrchestrator(_OrchestratorCase):
    async def test_folder_download_lists_once_and_reports_progress(self) -> None:
        self.cached(folder("A", "folderA"))
        self.transport.add(file("f1", "one.bin", parent="A", size=2 * MIB), b"a" * (2 * MIB))
        self.transport.add(folder("f2", "f2", parent="A"))
        # f2 was explored earlier and is known to be empty
        empty = self.cache.put(FileNode.from_api(folder("f2", "f2", parent="A")))
        empty.children_state = ChildrenState.NO_CHILDREN
        observer = RecordingObserver()

        report = await self.orchestrator.download(["A"], self.target, observer=observer)

        self.assertEqual(report.status, "completed")
        self.assertEqual(len(self.transport.calls_of("list_files")), 1)
        self.assertEqual(self.read("folderA", "one.bin"), b"a" * (2 * MIB))
        self.assertTrue(os.path.isdir(os.path.join(self.target, "folderA", "f2")))
        self.assertEqual(os.listdir(os.path.join(self.target, "folderA", "f2")), [])
        self.assertFalse(os.path.exists(os.path.join(self.target, "folderA", "one.bin.part")))
        self.assertEqual(report.find("f2").status, "success")

        # folderA itself plus its two children; the empty f2 adds nothing.
        self.assertEqual([e[1] for e in observer.of("total")], [3])
        self.assertEqual(observer.final_state.total_count, 3)
        self.assertEqual(observer.final_state.completed_count, 3)
        self.assertEqual(observer.final_state.in_flight, {})
        self.assertEqual(
            [e[2] for e in observer.of("progress") if e[1] == "f1"], [MIB, 2 * MIB]
        )
        self.assertEqual(self.finished_dirs, [self.target])
        self.assertFalse(self.lock.in_progress)

    async def test_unexplored_subfolders_are_listed_and_recreated(self) -> None:
        self.cached(folder("A", "top"))
        self.transport.add(folder("B", "middle", parent="A"))
        self.transport.add(folder("C", "leaf", parent="B"))
        self.transport.add(file("F", "deep.txt", parent="C", size=4), b"deep")
        observer = RecordingObserver()

        report = await self.orchestrator.download(["A"], self.target, observer=observer)

        self.assertEqual(
            [c[1] for c in self.transport.calls_of("list_files")],
            ["'A' in parents and trashed = false",
             "'B' in parents and trashed = false",
             "'C' in parents and trashed = false"],
        )
        self.assertEqual(self.read("top", "middle", "leaf", "deep.txt"), b"deep")
        self.assertEqual(self.cache.get("C").children_state, ChildrenState.HAS_CHILDREN)
        self.assertEqual(report.summary["success"], 4)
        self.assertEqual(observer.final_state.total_count, 4)
        self.assertEqual(observer.final_state.completed_count, 4)

    async def test_same_named_siblings_get_separate_files(self) -> None:
        self.cached(folder("A", "A"))
        self.transport.add(file("x1", "a.txt", parent="A", size=12), b"FIRST-FILE!!")
        self.transport.add(file("x2", "a.txt", parent="A", size=12), b"second-file?")
        self.prompter.choices = [ConflictChoice.UNIQUE_NAME]

        report = await self.orchestrator.download(["A"], self.target)

        self.assertEqual(report.summary["success"], 3)
        self.assertEqual(
            self.prompter.calls[0],
            ("choose_conflict_action", os.path.join(self.target, "A", "a.txt"), False),
        )
        self.assertEqual(sorted(os.listdir(os.path.join(self.target, "A"))), ["a 1.txt", "a.txt"])
        written = {
            file_id: self.read("A", os.path.basename(report.find(file_id).local_path))
            for file_id in ("x1", "x2")
        }
        self.assertEqual(written, {"x1": b"FIRST-FILE!!", "x2": b"second-file?"})

    async def test_overwriting_a_same_named_sibling_keeps_one_whole_file(self) -> None:
        self.cached(folder("A", "A"))
        self.transport.add(file("x1", "a.txt", parent="A", size=12), b"FIRST-FILE!!")
        self.transport.add(file("x2", "a.txt", parent="A", size=12), b"second-file?")
        self.prompter.choices = [ConflictChoice.OVERWRITE]

        report = await self.orchestrator.download(["A"], self.target)

        self.assertEqual(report.summary["success"], 3)
        self.assertEqual(os.listdir(os.path.join(self.target, "A")), ["a.txt"])
        self.assertIn(self.read("A", "a.txt"), (b"FIRST-FILE!!", b"second-file?"))

    async def test_empty_selection_aborts(self) -> None:
        with self.assertLogs("drivebrowser.download.orchestrator", level="WARNING"):
            report = await self.orchestrator.download(["unknown"], self.target)
        self.assertEqual(report.status, "aborted")
        self.assertEqual(self.transport.calls, [])

    async def test_prompts_for_directory_and_declining_aborts(self) -> None:
        self.cached(file("F", "f.txt", size=1), b"x")

        report = await self.orchestrator.download(["F"])

        self.assertEqual(report.status, "aborted")
        self.assertEqual(self.prompter.calls, [("choose_directory",)])
        self.assertEqual(self.transport.calls_of("download_content"), [])

    async def test_prompted_directory_is_used(self) -> None:
        self.cached(file("F", "f.txt", size=1), b"x")
        self.prompter.directory = os.path.join(self.target, "picked")

        report = await self.orchestrator.download(["F"])

        self.assertEqual(report.status, "completed")
        self.assertEqual(self.read("picked", "f.txt"), b"x")

    async def test_leaf_transfers_are_bounded(self) -> None:
        for i in range(8):
            self.cached(file(f"F{i}", f"f{i}.bin", size=MIB), b"z" * MIB)

        report = await self.orchestrator.download([f"F{i}" for i in range(8)], self.target)

        self.assertEqual(report.summary["success"], 8)
        self.assertEqual(self.transport.max_active_transfers, 3)

    async def test_abusive_file_is_retried_once_with_acknowledgement(self) -> None:
        self.cached(file("F", "f.bin", size=4), b"data")
        self.transport.fail("download_content", "F", AbusiveFileError("flagged"))

        report = await self.orchestrator.download(["F"], self.target)

        calls = self.transport.calls_of("download_content")
        self.assertEqual(calls, [("download_content", "F", False), ("download_content", "F", True)])
        self.assertEqual(report.find("F").status, "success")
        self.assertEqual(self.read("f.bin"), b"data")

    async def test_abusive_file_failing_twice_is_reported(self) -> None:
        self.cached(file("F", "f.bin", size=4), b"data")
        self.transport.fail(
            "download_content", "F", AbusiveFileError("flagged"), AbusiveFileError("again")
        )

        with self.assertLogs("drivebrowser.download.orchestrator", level="WARNING"):
            report = await self.orchestrator.download(["F"], self.target)

        self.assertEqual(report.find("F").status, "failed")
        self.assertEqual(report.find("F").error_type, "AbusiveFileError")
        self.assertEqual(len(self.transport.calls_of("download_content")), 2)
        self.assertEqual(os.listdir(self.target), [])

    async def test_native_document_is_exported_as_pdf(self) -> None:
        self.cached(
            {"id": "D", "name": "Notes", "mimeType": "application/vnd.google-apps.document"},
            b"%PDF",
        )
        self.transport.extra["D"] = {
            "exportLinks": {
                "text/plain": "https://docs.google.com/export?id=D&exportFormat=txt",
                "application/pdf": "https://docs.google.com/export?id=D&exportFormat=pdf",
            }
        }

        report = await self.orchestrator.download(["D"], self.target)

        self.assertEqual(report.status, "completed")
        self.assertEqual(
            self.transport.calls_of("export_content"),
            [("export_content", "D", "application/pdf")],
        )
        self.assertEqual(self.read("Notes.pdf"), b"%PDF")

    async def test_export_size_limit_fails_only_that_unit(self) -> None:
        self.cached(
            {"id": "D", "name": "Big", "mimeType": "application/vnd.google-apps.spreadsheet"}
        )
        self.transport.extra["D"] = {
            "exportLinks": {"text/csv": "https://docs.google.com/x?exportFormat=csv"}
        }
        self.transport.fail("export_content", "D", ExportSizeLimitError("too big"))
        self.cached(file("F", "ok.txt", size=2), b"ok")

        with self.assertLogs("drivebrowser.download.orchestrator", level="WARNING"):
            report = await self.orchestrator.download(["D", "F"], self.target)

        self.assertEqual(report.status, "completed")
        self.assertEqual(report.find("D").status, "failed")
        self.assertEqual(report.find("F").status, "success")
        self.assertFalse(os.path.exists(os.path.join(self.target, "Big.csv")))

    async def test_restricted_file_is_not_downloaded(self) -> None:
        self.cached(file("F", "secret.bin", size=4), b"data")
        self.transport.extra["F"] = {"copyRequiresWriterPermission": True}

        with self.assertLogs("drivebrowser.download.orchestrator", level="WARNING"):
            report = await self.orchestrator.download(["F"], self.target)

        self.assertEqual(report.find("F").error_type, "PermissionError")
        self.assertEqual(self.transport.calls_of("download_content"), [])

    async def test_vanished_file_is_skipped_and_unlinked(self) -> None:
        parent = self.cached(folder("A", "A"))
        parent.children = ["G"]
        parent.children_state = ChildrenState.HAS_CHILDREN
        self.cache.put(FileNode.from_api(file("G", "gone.txt", parent="A", size=1)))

        with self.assertLogs("drivebrowser.download.orchestrator", level="WARNING"):
            report = await self.orchestrator.download(["A"], self.target)

        self.assertEqual(report.find("G").status, "skipped")
        self.assertEqual(self.cache.get("A").children, [])
        self.assertEqual(self.cache.get("A").children_state, ChildrenState.NO_CHILDREN)

    async def test_failed_listing_fails_folder_only(self) -> None:
        self.cached(folder("A", "A"))
        self.cached(file("F", "f.txt", size=1), b"x")
        self.transport.fail("list_files", "A", NetworkError("down"))

        with self.assertLogs("drivebrowser", level="WARNING") as logs:
            report = await self.orchestrator.download(["A", "F"], self.target)

        errors = [r for r in logs.records if r.levelname == "ERROR"]
        self.assertEqual([r.name for r in errors], ["drivebrowser.cache.file_cache"])
        self.assertEqual(sum(r.exc_info is not None for r in logs.records), 1)
        self.assertIn(
            "WARNING:drivebrowser.download.orchestrator:Could not list contents of folder 'A'",
            logs.output,
        )
        self.assertEqual(report.find("A").status, "failed")
        self.assertEqual(report.find("A").error_type, "DriveBrowserError")
        self.assertEqual(report.find("F").status, "success")
        self.assertFalse(os.path.exists(os.path.join(self.target, "A")))


class TestDownloadConflicts(_OrchestratorCase):
    async def test_always_skip_transfers_nothing_further(self) -> None:
        for name in ("a.txt", "b.txt", "c.txt"):
            with open(os.path.join(self.target, name), "wb") as f:
                f.write(b"old")
        self.cached(file("A", "a.txt", size=3), b"new")
        self.cached(file("B", "b.txt", size=3), b"new")
        self.cached(file("C", "c.txt", size=3), b"new")
        self.prompter.choices = [ConflictChoice.SKIP]
        self.prompter.remember = [True]

        report = await self.orchestrator.download(["A", "B", "C"], self.target)

        self.assertEqual(self.orchestrator.conflicts.policy, ConflictPolicy.ALWAYS_SKIP)
        self.assertEqual(report.summary["skipped"], 3)
        self.assertEqual(self.transport.calls_of("download_content"), [])
        self.assertEqual(
            [c[0] for c in self.prompter.calls], ["choose_conflict_action", "confirm_remember"]
        )
        self.assertEqual(self.read("a.txt"), b"old")

    async def test_existing_folder_is_appended_into(self) -> None:
        os.mkdir(os.path.join(self.target, "A"))
        with open(os.path.join(self.target, "A", "keep.txt"), "wb") as f:
            f.write(b"keep")
        self.cached(folder("A", "A"))
        self.transport.add(file("F", "new.txt", parent="A", size=3), b"new")
        self.prompter.choices = [ConflictChoice.OVERWRITE]
        self.prompter.remember = [False]

        await self.orchestrator.download(["A"], self.target)

        self.assertEqual(sorted(os.listdir(os.path.join(self.target, "A"))), ["keep.txt", "new.txt"])
        self.assertEqual(self.prompter.calls[0], ("choose_conflict_action", os.path.join(self.target, "A"), True))

    async def test_unique_name_for_single_file(self) -> None:
        with open(os.path.join(self.target, "f.txt"), "wb") as f:
            f.write(b"old")
        self.cached(file("F", "f.txt", size=3), b"new")
        self.prompter.choices = [ConflictChoice.UNIQUE_NAME]

        report = await self.orchestrator.download(["F"], self.target)

        self.assertEqual(report.find("F").local_path, os.path.join(self.target, "f 1.txt"))
        self.assertEqual(self.read("f 1.txt"), b"new")
        self.assertNotIn("confirm_remember", [c[0] for c in self.prompter.calls])


class TestDownloadCancellation(_OrchestratorCase):
    async def test_cancel_mid_transfer_removes_partial_output(self) -> None:
        self.cached(file("F", "big.bin", size=2 * MIB), b"b" * (2 * MIB))
        token = CancellationToken()

        def on_chunk(file_id: str, index: int) -> None:
            if index == 2:
                token.cancel()

        self.transport.on_chunk = on_chunk
        sidecar = os.path.join(self.target, "big.bin.part.meta")
        with open(sidecar, "wb"):
            pass
        observer = RecordingObserver()

        with self.assertLogs("drivebrowser.download.orchestrator", level="INFO") as logs:
            report = await self.orchestrator.download(
                ["F"], self.target, observer=observer, cancel_token=token
            )

        self.assertEqual(report.status, "canceled")
        self.assertEqual(report.find("F").status, "canceled")
        self.assertEqual(os.listdir(self.target), [])
        self.assertEqual(observer.final_state.completed_count, 0)
        self.assertEqual(observer.final_state.in_flight, {})
        self.assertEqual(sum("Download canceled" in line for line in logs.output), 1)

    async def test_cancel_before_start_transfers_nothing(self) -> None:
        for i in range(4):
            self.cached(file(f"F{i}", f"f{i}.bin", size=1), b"x")
        token = CancellationToken()
        token.cancel()

        report = await self.orchestrator.download(
            [f"F{i}" for i in range(4)], self.target, cancel_token=token
        )

        self.assertEqual(report.status, "canceled")
        self.assertEqual(report.summary["canceled"], 4)
        self.assertEqual(self.transport.calls, [])
        self.assertFalse(self.lock.in_progress)


if __name__ == "__main__":
    unittest.main()
