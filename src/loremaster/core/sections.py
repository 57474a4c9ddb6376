"""Section generation: one text completion per section template.

Calls fan out concurrently, bounded by a semaphore (``max_concurrency=1``
runs them strictly one after another).  The returned sections always follow
template order, whatever order the calls complete in.

A :class:`~loremaster.core.errors.ProviderError` affects only its own section:
it is logged, recorded in the failures mapping, and the section is left out of
the result.  Any other exception cancels the calls still in flight and
propagates to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from loremaster.core.errors import ProviderError
from loremaster.core.models import GenerationRequest, SectionResult
from loremaster.core.providers import TextProvider
from loremaster.core.templates import SYSTEM_PROMPT, SectionTemplate

logger = logging.getLogger(__name__)


async def generate_section(
    provider: TextProvider,
    request: GenerationRequest,
    template: SectionTemplate,
    *,
    temperature: float,
) -> SectionResult:
    """Generate the body of a single section.

    Raises:
        ProviderError: If the provider call fails.
    """
    prompt = template.build_prompt(request)
    logger.info("Generating section '%s' (%d prompt chars)", template.key, len(prompt))
    body = await provider.complete(SYSTEM_PROMPT, prompt, temperature=temperature)
    return SectionResult(key=template.key, title=template.title, body=body.strip())


async def generate_sections(
    provider: TextProvider,
    request: GenerationRequest,
    templates: Sequence[SectionTemplate],
    *,
    temperature: float = 0.8,
    max_concurrency: int = 4,
) -> tuple[tuple[SectionResult, ...], dict[str, str]]:
    """Generate every section for a request.

    Args:
        provider: Text provider used for every call.
        request: Validated generation request.
        templates: Ordered section templates.
        temperature: Creativity parameter passed to the provider.
        max_concurrency: Maximum number of calls in flight at once.

    Returns:
        Tuple of ``(sections, failures)``.  ``sections`` holds the successful
        results in template order; ``failures`` maps each failed section key
        to the error message.
    """
    semaphore = asyncio.Semaphore(max_concurrency)

    async def _run(template: SectionTemplate) -> SectionResult | ProviderError:
        async with semaphore:
            try:
                return await generate_section(
                    provider, request, template, temperature=temperature
                )
            except ProviderError as e:
                logger.warning("Section '%s' failed: %s", template.key, e)
                return e

    tasks = [asyncio.ensure_future(_run(t)) for t in templates]
    try:
        outcomes = await asyncio.gather(*tasks)
    except BaseException:
        # An unexpected error leaves the other calls running; stop them.
        for task in tasks:
            task.cancel()
        raise

    sections: list[SectionResult] = []
    failures: dict[str, str] = {}
    for template, outcome in zip(templates, outcomes):
        if isinstance(outcome, SectionResult):
            sections.append(outcome)
        else:
            failures[template.key] = str(outcome)

    logger.info("Generated %d of %d sections", len(sections), len(templates))
    return tuple(sections), failures
