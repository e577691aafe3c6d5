from __future__ import annotations

import argparse
import asyncio
import json
import mimetypes
import sys
from pathlib import Path

from resume_analyzer.ai.factory import get_generation_client
from resume_analyzer.core.security import SessionTokenIdentityProvider, issue_session_token
from resume_analyzer.schemas.upload import UploadedFile
from resume_analyzer.services.orchestrator import AnalysisOrchestrator
from resume_analyzer.services.text_extractor import get_text_extractor
from resume_analyzer.services.upload_stager import (
    AnalysisInvoker,
    HttpAnalysisInvoker,
    InProcessAnalysisInvoker,
    Notification,
    Phase,
    UploadContext,
    UploadSession,
    UploadStager,
)
from resume_analyzer.storage.blob_store import get_blob_store
from resume_analyzer.storage.records_store import get_record_store


def _print_progress(session: UploadSession) -> None:
    print(f"[{session.progress:3d}%] {session.phase.value}")


def _print_notification(notification: Notification) -> None:
    stream = sys.stderr if notification.variant == "destructive" else sys.stdout
    print(f"{notification.title} {notification.description}", file=stream)


def main() -> None:
    parser = argparse.ArgumentParser(description="Upload a resume and print its analysis.")
    parser.add_argument("path", help="Resume file (.pdf, .doc, .docx or .txt)")
    parser.add_argument("--user-id", required=True, help="Owner of the uploaded resume")
    parser.add_argument("--mime-type", default=None, help="Override the guessed MIME type")
    parser.add_argument(
        "--server",
        default=None,
        help="Analysis server base URL. It must share DATABASE_PATH with this process.",
    )
    parser.add_argument("--token", default=None, help="Session token for --server mode")
    args = parser.parse_args()

    path = Path(args.path)
    mime_type = args.mime_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    upload = UploadedFile(file_name=path.name, mime_type=mime_type, content=path.read_bytes())

    store = get_record_store()
    invoker: AnalysisInvoker
    if args.server:
        if not args.token:
            parser.error("--token is required with --server")
        token = args.token
        invoker = HttpAnalysisInvoker(args.server, token)
    else:
        token = issue_session_token(args.user_id, store)
        orchestrator = AnalysisOrchestrator(
            identity=SessionTokenIdentityProvider(store),
            generation_client=get_generation_client(),
            store=store,
        )
        invoker = InProcessAnalysisInvoker(orchestrator, f"Bearer {token}")

    stager = UploadStager(
        context=UploadContext(user_id=args.user_id),
        blob_store=get_blob_store(),
        metadata_store=store,
        extractor=get_text_extractor(),
        invoker=invoker,
        on_progress=_print_progress,
        on_notify=_print_notification,
    )
    session = asyncio.run(stager.submit(upload))
    if session is None or session.phase is not Phase.COMPLETE or session.outcome is None:
        raise SystemExit(1)

    result = store.get_analysis(session.outcome.analysis_id or "", user_id=args.user_id)
    if result is not None:
        print(json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
