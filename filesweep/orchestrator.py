"""Sweep orchestrator wiring enumeration, paged search, download and dedup."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from functools import partial
from pathlib import Path

import structlog

from .config import SweepConfig
from .engine import (
    DedupStore,
    OfferResult,
    PageFetcher,
    QueryParameterization,
    SearchClient,
    SearchItem,
    ThreadPoolManager,
    count_parameterizations,
    enumerate_parameterizations,
)
from .infra import SQLiteManager
from .ui import ProgressReporter


@dataclass(slots=True)
class IngestSummary:
    parameterizations: int = 0
    pages: int = 0
    items: int = 0
    inserted: int = 0
    duplicates: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class Orchestrator:
    """Run every parameterization for the store's target file to completion.

    Pages are processed strictly one after another; the items of a page are
    offered to the store concurrently and the whole batch settles before the
    fetcher is allowed to request the next page.
    """

    def __init__(
        self,
        client: SearchClient,
        store: DedupStore,
        config: SweepConfig,
        thread_pool: ThreadPoolManager,
        logger: structlog.BoundLogger | None = None,
        progress: ProgressReporter | None = None,
        fetcher: PageFetcher | None = None,
    ) -> None:
        self.client = client
        self.store = store
        self.config = config
        self.thread_pool = thread_pool
        self.logger = logger or structlog.get_logger("filesweep.orchestrator")
        self.progress = progress or ProgressReporter(enabled=False)
        self.fetcher = fetcher or PageFetcher(client, config, logger=self.logger)

    @property
    def target_filename(self) -> str:
        return self.store.target_filename

    def run(self, start_page: int = 0) -> IngestSummary:
        """Sweep the whole parameter space; ``start_page`` applies to the first one only."""

        filename = self.target_filename
        vocabulary = self.config.vocabulary_for(filename)
        summary = IngestSummary()
        current: QueryParameterization | None = None
        current_page: int | None = None
        self.progress.start(count_parameterizations(filename, vocabulary))
        self.logger.info(
            "ingest_started", filename=filename, start_page=start_page, vocabulary=len(vocabulary)
        )
        try:
            for index, param in enumerate(enumerate_parameterizations(filename, vocabulary)):
                summary.parameterizations += 1
                first_page = start_page if index == 0 else 0
                current, current_page = param, first_page
                for result in self.fetcher.iter_pages(param, first_page):
                    current_page = result.page
                    outcomes = self.thread_pool.run_batch(self._offer, result.items)
                    inserted = sum(1 for outcome in outcomes if outcome.inserted)
                    summary.pages += 1
                    summary.items += len(result.items)
                    summary.inserted += inserted
                    summary.duplicates += len(outcomes) - inserted
                    self.logger.info(
                        "page_ingested",
                        param=param.describe(),
                        page=result.page,
                        last_page=result.last_page_index,
                        items=len(result.items),
                        inserted=inserted,
                        total_inserted=summary.inserted,
                    )
                    self.progress.page_done(
                        param.describe(),
                        result.page,
                        result.last_page_index,
                        inserted,
                        len(outcomes) - inserted,
                    )
                    # The fetcher requests the following page next.
                    current_page = result.page + 1
                self.progress.parameterization_done()
        except Exception:
            self.logger.exception(
                "ingest_failed",
                param=current.describe() if current else None,
                page=current_page,
                **summary.as_dict(),
            )
            raise
        finally:
            self.progress.close()
        self.logger.info("ingest_complete", filename=filename, **summary.as_dict())
        return summary

    def close(self) -> None:
        """Release the worker pool, HTTP client and store connection."""

        try:
            self.thread_pool.shutdown()
            self.client.close()
        finally:
            self.store.close()
            self.logger.info("store_closed", filename=self.target_filename)

    def _offer(self, item: SearchItem) -> OfferResult:
        return self.store.offer(item.url, item.blob_identity, partial(self.client.download, item.url))


class DedupStoreFactory:
    """Build the dedup store for a target filename from configuration."""

    @staticmethod
    def build(
        storage: SQLiteManager,
        config: SweepConfig,
        base_dir: Path,
        target_filename: str,
        logger: structlog.BoundLogger | None = None,
    ) -> DedupStore:
        return DedupStore(
            storage,
            config.resolved_db_path(base_dir),
            target_filename,
            unique_content_hash=config.unique_content_hash,
            logger=logger,
        )


__all__ = ["DedupStoreFactory", "IngestSummary", "Orchestrator"]
