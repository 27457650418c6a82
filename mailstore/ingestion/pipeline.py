"""Email ingestion pipeline: validate, store, chunk, embed, store sections."""

import asyncio
import time
from typing import Any, Awaitable, List, Optional, Sequence, TypeVar, TYPE_CHECKING

import structlog

from .chunking import DEFAULT_CHUNK_SIZE, split_into_chunks
from .models import EmailSection, EmailStatus, IngestionResult, IngestionStatus
from .validation import validate_email_payload
from ..exceptions import EmailInProgressError, EmailNotFoundError, EmbeddingError, IngestionError, StoreError, ValidationError

if TYPE_CHECKING:
    from ..database.store import EmailStore
    from ..services.embeddings import EmbeddingProvider

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class IngestionPipeline:
    """Stores an email and one embedded section per body chunk.

    The email row and its sections are not written in one transaction. The
    email is inserted with status ``pending`` and flipped to ``complete`` once
    every section is stored, or to ``failed`` when a chunk fails. Sections are
    always written in increasing ``section_order`` with no gaps, so a failed
    ingestion can be picked up again with :meth:`resume`.
    """

    def __init__(
        self,
        store: "EmailStore",
        embedder: "EmbeddingProvider",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        embedding_concurrency: int = 1,
        store_timeout: Optional[float] = None,
    ):
        if embedding_concurrency < 1:
            raise ValueError("embedding_concurrency must be at least 1")
        self.store = store
        self.embedder = embedder
        self.chunk_size = chunk_size
        self.embedding_concurrency = embedding_concurrency
        self.store_timeout = store_timeout

    async def ingest(self, payload: Any) -> IngestionResult:
        """Validate and store one email with its embedded sections."""
        start_time = time.time()

        try:
            email = validate_email_payload(payload)
        except ValidationError as exc:
            return IngestionResult.failure(exc, latency=time.time() - start_time)

        try:
            email_id = await self._store_call(self.store.insert_email(email))
        except StoreError as exc:
            logger.error("Error inserting email", error=exc.message)
            return IngestionResult.failure(exc, latency=time.time() - start_time)

        log = logger.bind(email_id=email_id)
        chunks = split_into_chunks(email.body, self.chunk_size)
        log.info("Email body split into chunks", chunks=len(chunks), chunk_size=self.chunk_size)

        return await self._write_sections(email_id, chunks, first_order=1, start_time=start_time)

    async def resume(self, email_id: int, force: bool = False) -> IngestionResult:
        """Continue an interrupted ingestion after its last stored section.

        The body is re-chunked with the current chunk size; chunks up to the
        highest stored ``section_order`` are skipped. Raises
        ``EmailNotFoundError`` when the email does not exist and
        ``EmailInProgressError`` when it is still ``pending``. Pass
        ``force=True`` for a pending email whose ingesting process is gone.
        """
        start_time = time.time()

        try:
            stored = await self._store_call(self.store.get_email(email_id))
            if stored is None:
                raise EmailNotFoundError(email_id)
            if stored.status == EmailStatus.PENDING and not force:
                raise EmailInProgressError(email_id)
            done = await self._store_call(self.store.last_section_order(email_id))
        except StoreError as exc:
            return IngestionResult.failure(exc.with_context(email_id=email_id), latency=time.time() - start_time)

        chunks = split_into_chunks(stored.body, self.chunk_size)
        logger.info("Resuming email ingestion", email_id=email_id, stored_sections=done, chunks=len(chunks))

        if done > len(chunks):
            error = StoreError(
                f"Email {email_id} has {done} sections but its body yields {len(chunks)} chunks",
                email_id=email_id,
            )
            return IngestionResult.failure(error, latency=time.time() - start_time)

        return await self._write_sections(email_id, chunks[done:], first_order=done + 1, start_time=start_time)

    async def _write_sections(
        self,
        email_id: int,
        chunks: Sequence[str],
        first_order: int,
        start_time: float,
    ) -> IngestionResult:
        """Embed and insert *chunks*, numbering them from *first_order*."""
        log = logger.bind(email_id=email_id)
        written = 0
        total = first_order - 1 + len(chunks)

        try:
            for offset in range(0, len(chunks), self.embedding_concurrency):
                window = chunks[offset:offset + self.embedding_concurrency]
                window_start = first_order + offset
                embeddings = await self._embed_window(window, window_start)

                for index, (chunk, embedding) in enumerate(zip(window, embeddings)):
                    section_order = window_start + index
                    if isinstance(embedding, BaseException):
                        raise embedding
                    section = EmailSection(
                        email_id=email_id,
                        section_content=chunk,
                        embedding=embedding,
                        section_order=section_order,
                    )
                    await self._store_call(self.store.insert_section(section))
                    written += 1
                    log.debug("Stored email section", section_order=section_order)
        except (EmbeddingError, StoreError) as exc:
            exc.with_context(email_id=email_id, section_order=first_order + written)
            log.error(
                "Email ingestion aborted",
                error_type=exc.error_type,
                section_order=exc.section_order,
                sections_written=written,
                error=exc.message,
            )
            await self._mark(email_id, EmailStatus.FAILED)
            return IngestionResult.failure(
                exc,
                sections_written=written,
                total_sections=total,
                latency=time.time() - start_time,
            )

        await self._mark(email_id, EmailStatus.COMPLETE)
        latency = time.time() - start_time
        log.info("Email and sections stored successfully", sections=written, latency=latency)
        return IngestionResult(
            status=IngestionStatus.SUCCESS,
            email_id=email_id,
            sections_written=written,
            total_sections=total,
            latency=latency,
        )

    async def _embed_window(self, window: Sequence[str], window_start: int) -> List[Any]:
        """Embed a window of chunks, keeping results in chunk order.

        Failures are returned in place of the vector so that sections before
        the first failing chunk can still be written.
        """
        if len(window) == 1:
            try:
                return [await self._embed(window[0], window_start)]
            except EmbeddingError as exc:
                return [exc]

        tasks = [self._embed(chunk, window_start + index) for index, chunk in enumerate(window)]
        return await asyncio.gather(*tasks, return_exceptions=True)

    async def _embed(self, chunk: str, section_order: int) -> List[float]:
        """Embed one chunk, tagging failures with its section order."""
        try:
            return await self.embedder.embed(chunk)
        except EmbeddingError as exc:
            raise exc.with_context(section_order=section_order)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise EmbeddingError(f"Embedding failed: {exc}", section_order=section_order, cause=exc) from exc

    async def _store_call(self, call: Awaitable[T]) -> T:
        """Await a store call, bounded by the store timeout."""
        try:
            if self.store_timeout is None:
                return await call
            return await asyncio.wait_for(call, timeout=self.store_timeout)
        except asyncio.TimeoutError as exc:
            raise StoreError(f"Store operation timed out after {self.store_timeout}s", cause=exc) from exc

    async def _mark(self, email_id: int, status: EmailStatus) -> None:
        """Record the pipeline status; a failure here does not change the outcome."""
        try:
            await self._store_call(self.store.update_status(email_id, status))
        except IngestionError as exc:
            logger.warning("Could not update email status", email_id=email_id, status=status.value, error=exc.message)
