import asyncio
import json
import os
import shutil
import tempfile
import unittest

import httpx

from resume_analyzer.core.errors import AuthError, QuotaExceeded, RateLimited, StorageError
from resume_analyzer.core.security import SessionTokenIdentityProvider
from resume_analyzer.schemas.upload import UploadedFile
from resume_analyzer.services.orchestrator import AnalysisOrchestrator
from resume_analyzer.services.text_extractor import TextExtractor
from resume_analyzer.services.upload_stager import (
    HttpAnalysisInvoker,
    InProcessAnalysisInvoker,
    InvalidTransition,
    Phase,
    UploadContext,
    UploadSession,
    UploadStager,
)
from resume_analyzer.storage.blob_store import LocalBlobStore
from resume_analyzer.storage.records_store import RecordStore

REPLY = json.dumps(
    {
        "skills": {"technical": ["Go"], "soft": ["Ownership"], "certifications": []},
        "experienceSummary": "Backend engineer.",
        "strengths": ["Reliability work"],
        "improvements": ["Quantify impact"],
        "atsScore": 71,
    }
)

FIXED_MS = 1700000000000


class FakeGenerationClient:
    def __init__(self):
        self.messages = []

    def complete(self, messages):
        self.messages.append(messages)
        return REPLY


class FailingBlobStore:
    def put(self, key, content, *, content_type):
        raise StorageError("Failed to store file")

    def get(self, key):
        raise StorageError("Failed to read file")


class RecordingInvoker:
    def __init__(self, result="analysis-1", error=None):
        self.result = result
        self.error = error
        self.calls = []

    def invoke(self, *, resume_text, resume_id):
        self.calls.append((resume_text, resume_id))
        if self.error is not None:
            raise self.error
        return self.result


class BlockingInvoker:
    def __init__(self):
        self.release = asyncio.Event()
        self.loop = None

    def invoke(self, *, resume_text, resume_id):
        asyncio.run_coroutine_threadsafe(self.release.wait(), self.loop).result(timeout=5)
        return "analysis-blocked"


def _text_upload(size=2048, name="alex-kim.txt"):
    line = b"Alex Kim - Senior Frontend Engineer\n"
    content = (line * (size // len(line) + 1))[:size]
    return UploadedFile(file_name=name, mime_type="text/plain", content=content)


class UploadSessionTests(unittest.TestCase):
    def test_advance_requires_next_phase(self):
        session = UploadSession("cv.txt")
        session.advance(Phase.VALIDATING)
        with self.assertRaises(InvalidTransition):
            session.advance(Phase.EXTRACTING)

    def test_fail_resets_progress_and_keeps_failed_phase(self):
        session = UploadSession("cv.txt")
        session.advance(Phase.VALIDATING)
        session.advance(Phase.UPLOADING_BLOB)
        session.fail("Upload failed", "disk full")
        self.assertEqual(session.phase, Phase.FAILED)
        self.assertEqual(session.progress, 0)
        self.assertEqual(session.outcome.failed_phase, Phase.UPLOADING_BLOB)
        with self.assertRaises(InvalidTransition):
            session.fail("Upload failed", "again")


class UploadStagerTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.store = RecordStore(os.path.join(self.tmp_dir, "records.db"))
        self.blobs = LocalBlobStore(os.path.join(self.tmp_dir, "blobs"))
        self.generation = FakeGenerationClient()
        self.progress = []
        self.notifications = []

    def tearDown(self):
        self.store.close()
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def _stager(self, *, user_id="user-a", invoker=None, blob_store=None):
        if invoker is None:
            token = self.store.create_session("user-a")
            orchestrator = AnalysisOrchestrator(
                identity=SessionTokenIdentityProvider(self.store),
                generation_client=self.generation,
                store=self.store,
            )
            invoker = InProcessAnalysisInvoker(orchestrator, f"Bearer {token}")
        return UploadStager(
            context=UploadContext(user_id=user_id),
            blob_store=blob_store or self.blobs,
            metadata_store=self.store,
            extractor=TextExtractor(),
            invoker=invoker,
            on_progress=lambda session: self.progress.append((session.phase, session.progress)),
            on_notify=self.notifications.append,
            clock_ms=lambda: FIXED_MS,
        )

    async def test_text_upload_runs_end_to_end(self):
        upload = _text_upload()
        session = await self._stager().submit(upload)

        self.assertEqual(session.phase, Phase.COMPLETE)
        self.assertEqual(session.progress, 100)
        self.assertTrue(session.outcome.success)

        key = f"user-a/{FIXED_MS}.txt"
        self.assertEqual(self.blobs.get(key), upload.content)

        user_message = self.generation.messages[0][-1].content
        self.assertEqual(user_message, "Analyze this resume:\n\n" + upload.content.decode("utf-8"))

        result = self.store.get_analysis(session.outcome.analysis_id, user_id="user-a")
        self.assertEqual(result.ats_score, 71)
        resume = self.store.get_resume(result.resume_id, user_id="user-a")
        self.assertEqual(resume.file_path, key)
        self.assertEqual(resume.file_size, 2048)

        self.assertEqual(len(self.notifications), 1)
        self.assertEqual(self.notifications[0].title, "Success!")
        self.assertEqual(self.notifications[0].variant, "default")

    async def test_charset_parameter_still_sends_file_text(self):
        upload = UploadedFile(file_name="cv.txt", mime_type="text/plain; charset=utf-8", content=b"Jane Doe\nPython engineer")
        session = await self._stager().submit(upload)
        self.assertEqual(session.phase, Phase.COMPLETE)
        self.assertEqual(self.generation.messages[0][-1].content, "Analyze this resume:\n\nJane Doe\nPython engineer")

    async def test_progress_is_monotone_through_checkpoints(self):
        await self._stager().submit(_text_upload())
        self.assertEqual([value for _, value in self.progress], [10, 20, 40, 60, 80, 100])

    async def test_wrong_type_is_rejected_before_any_side_effect(self):
        invoker = RecordingInvoker()
        upload = UploadedFile(file_name="photo.png", mime_type="image/png", content=b"\x89PNG")
        session = await self._stager(invoker=invoker).submit(upload)

        self.assertEqual(session.phase, Phase.FAILED)
        self.assertEqual(session.progress, 0)
        self.assertEqual(session.outcome.failed_phase, Phase.VALIDATING)
        self.assertEqual(invoker.calls, [])
        self.assertFalse(os.path.exists(os.path.join(self.tmp_dir, "blobs", "user-a")))
        self.assertEqual(len(self.notifications), 1)
        self.assertEqual(self.notifications[0].title, "Invalid file type")
        self.assertEqual(self.notifications[0].variant, "destructive")

    async def test_oversized_upload_is_rejected(self):
        upload = UploadedFile(file_name="big.pdf", mime_type="application/pdf", content=b"0" * (10 * 1024 * 1024 + 1))
        session = await self._stager(invoker=RecordingInvoker()).submit(upload)
        self.assertEqual(session.outcome.title, "File too large")
        self.assertEqual(self.notifications[0].description, "Please upload a file smaller than 10MB.")

    async def test_missing_user_fails_with_sign_in_message(self):
        invoker = RecordingInvoker()
        session = await self._stager(user_id=None, invoker=invoker).submit(_text_upload())
        self.assertEqual(session.phase, Phase.FAILED)
        self.assertEqual(self.notifications[0].description, "Please sign in to upload resumes")
        self.assertEqual(invoker.calls, [])

    async def test_storage_failure_resets_progress_and_notifies_once(self):
        invoker = RecordingInvoker()
        session = await self._stager(invoker=invoker, blob_store=FailingBlobStore()).submit(_text_upload())

        self.assertEqual(session.phase, Phase.FAILED)
        self.assertEqual(session.progress, 0)
        self.assertEqual(session.outcome.failed_phase, Phase.UPLOADING_BLOB)
        self.assertEqual(self.progress[-1], (Phase.FAILED, 0))
        self.assertEqual(invoker.calls, [])
        self.assertEqual(len(self.notifications), 1)
        self.assertEqual(self.notifications[0].title, "Upload failed")

    async def test_analysis_failure_keeps_resume_metadata(self):
        invoker = RecordingInvoker(error=RateLimited())
        session = await self._stager(invoker=invoker).submit(_text_upload())

        self.assertEqual(session.outcome.failed_phase, Phase.INVOKING)
        self.assertTrue(self.notifications[0].description.startswith("Rate limit exceeded"))
        _, resume_id = invoker.calls[0]
        self.assertIsNotNone(self.store.get_resume(resume_id, user_id="user-a"))
        self.assertEqual(self.store.list_analyses(resume_id, user_id="user-a"), [])

    async def test_submission_while_in_flight_is_ignored(self):
        invoker = BlockingInvoker()
        invoker.loop = asyncio.get_running_loop()
        stager = self._stager(invoker=invoker)

        first = asyncio.create_task(stager.submit(_text_upload()))
        while not stager.is_uploading or stager.session.phase is not Phase.INVOKING:
            await asyncio.sleep(0.01)

        self.assertIsNone(await stager.submit(_text_upload(name="second.txt")))
        invoker.release.set()
        session = await first
        self.assertEqual(session.phase, Phase.COMPLETE)
        self.assertEqual(session.file_name, "alex-kim.txt")

        again = await stager.submit(_text_upload(name="third.txt"))
        self.assertIsNotNone(again)


class HttpAnalysisInvokerTests(unittest.TestCase):
    def _invoker(self, handler):
        return HttpAnalysisInvoker("http://analysis.local/", "tok-1", transport=httpx.MockTransport(handler))

    def test_success_returns_analysis_id(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "analysis-9"})

        result = self._invoker(handler).invoke(resume_text="text", resume_id="resume-1")
        self.assertEqual(result, "analysis-9")
        self.assertEqual(seen["url"], "http://analysis.local/v1/analyze-resume")
        self.assertEqual(seen["auth"], "Bearer tok-1")
        self.assertEqual(seen["body"], {"resumeText": "text", "resumeId": "resume-1"})

    def test_status_codes_map_to_errors(self):
        cases = [(401, AuthError), (402, QuotaExceeded), (429, RateLimited)]
        for status, error_cls in cases:
            with self.subTest(status=status):
                invoker = self._invoker(lambda request, s=status: httpx.Response(s, json={"error": "nope"}))
                with self.assertRaises(error_cls) as ctx:
                    invoker.invoke(resume_text="text", resume_id="resume-1")
                self.assertEqual(str(ctx.exception), "nope")


if __name__ == "__main__":
    unittest.main()
