"""
Catalog Backend — Legacy Service Link Command
==============================================

What:  Proposes (and optionally writes) a subcategory for every legacy service
       that is tagged only with a bare category type ("ipo", "legal") and has
       no subcategory reference.
Why:   Such services only show up through the fuzzy fallback tier. Linking
       them moves them onto the structured tier.
How:   For each service, scores every non-anchor category of its type and keeps
       the best proposal:

           high    service slug contains the category slug / external id,
                   or service title contains the category title
           medium  two or more shared keywords
           low     one shared keyword

       Keywords are the words of slug / external id / title longer than two
       characters, minus a few stop words. Ties keep the first category in
       directory order.

Usage:
    # Report only
    python -m app.link_services

    # Write proposals of medium confidence or better
    python -m app.link_services --apply

    # Write everything that matched at all
    python -m app.link_services --apply --min-confidence low
"""

import argparse
import asyncio
import enum
import logging
import re
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from app.config import settings
from app.database import async_session_factory, dispose_engine
from app.models.catalog import Category, Service
from app.services.catalog_store import CatalogStore
from app.services.category_directory import CategoryDirectory, fold
from app.services.membership import has_subcategory

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset({"and", "the", "for", "with", "from"})


class Confidence(enum.IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3


@dataclass
class LinkProposal:
    service: Service
    category: Category
    confidence: Confidence
    reason: str


@dataclass
class LinkReport:
    proposals: List[LinkProposal] = field(default_factory=list)
    unmatched: List[Service] = field(default_factory=list)

    def at_least(self, threshold: Confidence) -> List[LinkProposal]:
        return [p for p in self.proposals if p.confidence >= threshold]


def extract_keywords(text: Optional[str]) -> List[str]:
    return [
        word for word in re.split(r"[-_\s]+", fold(text))
        if len(word) > 2 and word not in STOP_WORDS
    ]


def score(service: Service, category: Category) -> Optional[LinkProposal]:
    """Best confidence for linking `service` under `category`, or None."""
    slug = fold(service.slug)
    title = fold(service.title)
    category_tokens = [t for t in (fold(category.slug), fold(category.external_id)) if t]

    if any(token in slug for token in category_tokens):
        return LinkProposal(service, category, Confidence.HIGH, "slug contains category slug/id")
    if fold(category.title) and fold(category.title) in title:
        return LinkProposal(service, category, Confidence.HIGH, "title contains category title")

    category_keywords = []
    for text in (category.slug, category.external_id, category.title):
        for word in extract_keywords(text):
            if word not in category_keywords:
                category_keywords.append(word)
    service_keywords = extract_keywords(service.slug) + extract_keywords(service.title)

    shared = [
        keyword for keyword in category_keywords
        if any(keyword in word or word in keyword for word in service_keywords)
    ]
    if len(shared) >= 2:
        return LinkProposal(service, category, Confidence.MEDIUM, "keywords: " + ", ".join(shared))
    if shared:
        return LinkProposal(service, category, Confidence.LOW, "keyword: " + shared[0])
    return None


def propose_links(services: Sequence[Service], directory: CategoryDirectory) -> LinkReport:
    """Score every unlinked, type-tagged service against the categories of its type."""
    report = LinkReport()
    for service in services:
        if has_subcategory(service):
            continue
        # A bare type may equal an anchor's slug; that is not a real link.
        linked = directory.find_by_reference(service.category_ref)
        if linked is not None and not directory.is_type_anchor(linked):
            continue
        siblings = directory.fuzzy_siblings(service.category_ref)
        if not siblings:
            continue

        best: Optional[LinkProposal] = None
        for category in siblings:
            proposal = score(service, category)
            if proposal and (best is None or proposal.confidence > best.confidence):
                best = proposal
        if best is None:
            report.unmatched.append(service)
        else:
            report.proposals.append(best)
    return report


def apply_proposals(proposals: Sequence[LinkProposal]) -> int:
    for proposal in proposals:
        proposal.service.subcategory_ref = str(proposal.category.id)
        proposal.service.category_name = proposal.category.title
    return len(proposals)


def print_report(report: LinkReport, threshold: Confidence) -> None:
    print("\n" + "=" * 60)
    print("LINK PROPOSALS")
    print("=" * 60)
    for proposal in report.proposals:
        marker = "✓" if proposal.confidence >= threshold else " "
        print(
            f"  {marker} {proposal.service.slug} -> {proposal.category.slug} "
            f"({proposal.confidence.name.lower()}: {proposal.reason})"
        )
    if report.unmatched:
        print("\nUnmatched (need manual assignment):")
        for service in report.unmatched:
            print(f"    - {service.slug} ({service.title})")

    counts: Dict[Confidence, int] = {level: 0 for level in Confidence}
    for proposal in report.proposals:
        counts[proposal.confidence] += 1
    print(f"\nMatched:   {len(report.proposals)}")
    print(f"Unmatched: {len(report.unmatched)}")
    print("  " + "  ".join(f"{level.name.lower()}={counts[level]}" for level in reversed(Confidence)))


async def run(apply: bool, threshold: Confidence) -> LinkReport:
    async with async_session_factory() as session:
        store = CatalogStore(session)
        directory = CategoryDirectory(await store.load_categories())
        services = await store.list_services(include_drafts=True)

        report = propose_links(services, directory)
        print_report(report, threshold)

        if apply:
            written = apply_proposals(report.at_least(threshold))
            await session.commit()
            logger.info("Linked %d services (threshold: %s)", written, threshold.name.lower())
        else:
            logger.info("Dry run; pass --apply to write %d proposals", len(report.at_least(threshold)))
    return report


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Link legacy type-tagged services to their subcategories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Write proposals instead of only reporting them",
    )
    parser.add_argument(
        "--min-confidence",
        choices=[level.name.lower() for level in Confidence],
        default="medium",
        help="Lowest confidence written with --apply (default: medium)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    async def _run() -> None:
        try:
            await run(args.apply, Confidence[args.min_confidence.upper()])
        finally:
            await dispose_engine()

    asyncio.run(_run())
    return 0


if __name__ == "__main__":
    sys.exit(main())
