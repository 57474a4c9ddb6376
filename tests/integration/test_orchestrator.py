"""Integration tests for the full world-generation pipeline.

These run :class:`WorldOrchestrator` end to end against the in-memory
``FakeProvider``: real prompt templates, real image files and a real PDF
written below a temporary outputs directory.
"""

from __future__ import annotations

import asyncio
import dataclasses

import pytest

import loremaster.core.orchestrator as orchestrator_module
from loremaster.core.config import LoremasterConfig
from loremaster.core.errors import FatalError, InputError
from loremaster.core.models import GenerationRequest, WorldPhase
from loremaster.core.orchestrator import WorldOrchestrator
from loremaster.core.templates import SECTION_TEMPLATES

ALL_KEYS = [t.key for t in SECTION_TEMPLATES]


def _run(orchestrator: WorldOrchestrator, request: GenerationRequest, phases=None):
    callback = phases.append if phases is not None else None
    return asyncio.run(orchestrator.generate_world(request, on_phase=callback))


class TestRoundTrip:
    """A complete successful run."""

    def test_vreshari_emberkin(self, fake_provider, test_config, sample_request):
        """The sample request produces every section, image and the PDF."""
        result = _run(WorldOrchestrator(fake_provider, test_config), sample_request)

        assert result.folder == "vreshari_emberkin"
        folder = test_config.outputs_dir / "vreshari_emberkin"
        assert result.document_path == folder / "vreshari_emberkin.pdf"
        assert result.document_path.read_bytes().startswith(b"%PDF")
        assert result.section_keys == ALL_KEYS
        assert list(result.images) == ALL_KEYS
        assert dict(result.failures) == {}
        for key in ALL_KEYS:
            assert (folder / f"{key}.png").is_file()

    def test_phase_sequence(self, fake_provider, test_config, sample_request):
        """Phases are entered in pipeline order, ending in DONE."""
        phases: list[WorldPhase] = []
        _run(WorldOrchestrator(fake_provider, test_config), sample_request, phases)
        assert phases == [
            WorldPhase.NAMING_OUTPUT_FOLDER,
            WorldPhase.GENERATING_SECTIONS,
            WorldPhase.FETCHING_IMAGES,
            WorldPhase.COMPILING_DOCUMENT,
            WorldPhase.DONE,
        ]

    def test_sections_follow_template_order(self, provider_factory, test_config, sample_request):
        """Out-of-order completions still yield template-ordered sections."""
        provider = provider_factory(reverse_delay=0.01, total_calls=len(SECTION_TEMPLATES))
        result = _run(WorldOrchestrator(provider, test_config), sample_request)
        assert result.section_keys == ALL_KEYS

    def test_custom_templates(self, fake_provider, test_config, sample_request):
        """Any ordered template subset is honoured."""
        templates = (SECTION_TEMPLATES[3], SECTION_TEMPLATES[0])
        result = _run(WorldOrchestrator(fake_provider, test_config, templates), sample_request)
        assert result.section_keys == ["history", "foundations"]
        assert list(result.images) == ["history", "foundations"]
        assert len(fake_provider.text_calls) == 2

    def test_temperature_from_config(self, fake_provider, test_config, sample_request):
        """The configured temperature reaches every text call."""
        cfg = test_config.model_copy(update={"temperature": 0.2})
        _run(WorldOrchestrator(fake_provider, cfg), sample_request)
        assert {t for _, _, t in fake_provider.text_calls} == {0.2}

    def test_single_image_policy(self, fake_provider, test_config, sample_request):
        """The single policy stores one portrait and no per-section images."""
        cfg = test_config.model_copy(update={"image_policy": "single"})
        result = _run(WorldOrchestrator(fake_provider, cfg), sample_request)
        assert list(result.images) == ["portrait"]
        assert len(fake_provider.image_calls) == 1
        assert result.document_path.is_file()

    def test_url_images_downloaded(self, provider_factory, test_config, sample_request):
        """URL references are downloaded before being stored."""
        provider = provider_factory(image_mode="url")
        result = _run(WorldOrchestrator(provider, test_config), sample_request)
        assert len(provider.downloads) == len(ALL_KEYS)
        assert all(image.source_url for image in result.images.values())


class TestInvalidInput:
    """Requests with missing fields are rejected up front."""

    def test_blank_field_rejected_before_any_call(self, fake_provider, test_config, sample_request):
        """No provider call is made and no file is written."""
        request = dataclasses.replace(sample_request, spice="  ")
        phases: list[WorldPhase] = []

        with pytest.raises(InputError) as exc_info:
            _run(WorldOrchestrator(fake_provider, test_config), request, phases)

        assert exc_info.value.missing == ["spice"]
        assert fake_provider.text_calls == []
        assert fake_provider.image_calls == []
        assert list(test_config.outputs_dir.iterdir()) == []
        assert phases == []

    def test_every_missing_field_named(self, fake_provider, test_config):
        """All blank fields appear in the error."""
        request = GenerationRequest("", "", "fire", "", "Emberkin")
        with pytest.raises(InputError) as exc_info:
            _run(WorldOrchestrator(fake_provider, test_config), request)
        assert exc_info.value.missing == ["animal", "culture", "species_name"]


class TestPartialFailure:
    """Per-section and per-image failures do not abort the run."""

    def test_failed_section_still_compiles(self, provider_factory, test_config, sample_request):
        """A failing section is omitted and recorded; the PDF is still written."""
        provider = provider_factory(fail_on=["Establish the major deities"])
        result = _run(WorldOrchestrator(provider, test_config), sample_request)

        assert "pantheon" not in result.section_keys
        assert len(result.sections) == len(ALL_KEYS) - 1
        assert "section:pantheon" in result.failures
        assert result.document_path.read_bytes().startswith(b"%PDF")

    def test_failed_image_still_compiles(self, provider_factory, test_config, sample_request):
        """A failing image leaves its section without an image."""
        provider = provider_factory(fail_on=["Context: tactics."])
        result = _run(WorldOrchestrator(provider, test_config), sample_request)

        assert result.section_keys == ALL_KEYS
        assert "tactics" not in result.images
        assert list(result.failures) == ["image:tactics"]
        assert result.document_path.is_file()

    @pytest.mark.parametrize(
        "completion",
        ["The *wild **fire* dance** begins.", "Use `a**` then b** here."],
    )
    def test_malformed_markdown_completes(
        self, provider_factory, test_config, sample_request, completion
    ):
        """Crossed emphasis in every section still yields a full document."""
        provider = provider_factory(completion=completion)
        phases: list[WorldPhase] = []
        result = _run(WorldOrchestrator(provider, test_config), sample_request, phases)

        assert phases[-1] is WorldPhase.DONE
        assert result.section_keys == ALL_KEYS
        assert all(section.body == completion for section in result.sections)
        assert dict(result.failures) == {}
        assert result.document_path.read_bytes().startswith(b"%PDF")

    def test_every_call_failing(self, provider_factory, test_config, sample_request):
        """With every section and image failing, a cover-only PDF is produced."""
        provider = provider_factory(fail_on=["Vreshari", "warrior"])
        result = _run(WorldOrchestrator(provider, test_config), sample_request)

        assert result.sections == ()
        assert dict(result.images) == {}
        assert len(result.failures) == 2 * len(ALL_KEYS)
        assert result.document_path.read_bytes().startswith(b"%PDF")


class TestRerun:
    """Running twice for the same names reuses the folder."""

    def test_rerun_overwrites_same_path(self, test_config, sample_request, provider_factory):
        """The second run writes the same document path and image files."""
        first = _run(WorldOrchestrator(provider_factory(), test_config), sample_request)
        first_listing = sorted(p.name for p in first.document_path.parent.iterdir())

        second = _run(WorldOrchestrator(provider_factory(), test_config), sample_request)

        assert second.document_path == first.document_path
        assert sorted(p.name for p in second.document_path.parent.iterdir()) == first_listing
        assert [p.name for p in test_config.outputs_dir.iterdir()] == ["vreshari_emberkin"]


class TestFatalFailure:
    """Unrecoverable errors end the run in FAILED."""

    def test_compile_failure(self, fake_provider, test_config, sample_request, monkeypatch):
        """A FatalError from compilation is re-raised after FAILED."""

        async def broken_compile(*args, **kwargs):
            raise FatalError("compiling_document", "disk full")

        monkeypatch.setattr(orchestrator_module, "compile_document_async", broken_compile)
        phases: list[WorldPhase] = []

        with pytest.raises(FatalError) as exc_info:
            _run(WorldOrchestrator(fake_provider, test_config), sample_request, phases)

        assert exc_info.value.phase == "compiling_document"
        assert phases[-1] is WorldPhase.FAILED
        assert WorldPhase.DONE not in phases

    def test_unexpected_error_wrapped(self, fake_provider, test_config, sample_request, monkeypatch):
        """An unexpected exception becomes a FatalError naming the phase."""

        async def exploding_images(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(orchestrator_module, "fetch_images", exploding_images)
        phases: list[WorldPhase] = []

        with pytest.raises(FatalError) as exc_info:
            _run(WorldOrchestrator(fake_provider, test_config), sample_request, phases)

        assert exc_info.value.phase == "fetching_images"
        assert exc_info.value.reason == "boom"
        assert phases[-2:] == [WorldPhase.FETCHING_IMAGES, WorldPhase.FAILED]

    def test_unwritable_outputs(self, fake_provider, temp_dir, sample_request):
        """An outputs path that cannot hold the folder fails the run."""
        cfg = LoremasterConfig(_env_file=None, outputs_dir=str(temp_dir / "outputs"))
        (cfg.outputs_dir / "vreshari_emberkin").write_bytes(b"not a folder")

        with pytest.raises(FatalError) as exc_info:
            _run(WorldOrchestrator(fake_provider, cfg), sample_request)
        assert exc_info.value.phase == "compiling_document"
