"""Tests for the generation services (validation, provider calls, score parsing)."""
import random

import pytest

from resume_forge.clients import ANTHROPIC, OPENAI
from resume_forge.services.generation import (
    CoverLetterGenerator,
    GenerationContext,
    ResumeOptimizer,
    extract_score,
)
from resume_forge.services.prompts import CoverLetterInputs, ResumeInputs
from utils.exceptions import EmptyResponseError, InvalidRequestError

from tests.conftest import JOB_DESCRIPTION, RESUME_TEXT


CONTEXT = GenerationContext(user_id=7, country='GB', preferred_provider=None)


def resume_inputs(**overrides):
    fields = dict(content=RESUME_TEXT, job_description=JOB_DESCRIPTION, target_role='Senior Python Engineer')
    fields.update(overrides)
    return ResumeInputs(**fields)


def cover_inputs(**overrides):
    fields = dict(
        resume_content=RESUME_TEXT,
        job_description=JOB_DESCRIPTION,
        company_name='Acme Corp',
        target_role='Senior Python Engineer',
    )
    fields.update(overrides)
    return CoverLetterInputs(**fields)


class TestResumeValidation:

    @pytest.mark.parametrize('overrides,message', [
        ({'content': 'too short'}, 'Resume content'),
        ({'job_description': 'Python dev'}, 'Job description'),
        ({'job_description': None}, 'Job description'),
        ({'target_role': 'X'}, 'Target role'),
    ])
    def test_invalid_inputs_never_reach_provider(self, providers, overrides, message):
        optimizer = ResumeOptimizer(providers)

        with pytest.raises(InvalidRequestError, match=message):
            optimizer.optimize(resume_inputs(**overrides), CONTEXT)

        assert providers.call_count == 0

    def test_scoring_requires_optimized_content(self):
        with pytest.raises(InvalidRequestError):
            ResumeOptimizer.validate_scoring(None, JOB_DESCRIPTION)


class TestResumeOptimizer:

    def test_optimize_calls_flagship_with_user_id(self, providers):
        providers[OPENAI].queue("  Optimized resume body  ")
        result = ResumeOptimizer(providers).optimize(resume_inputs(), CONTEXT)

        assert result.text == "Optimized resume body"
        assert result.provider == OPENAI
        request = providers[OPENAI].requests[0]
        assert request.model == 'gpt-4o'
        assert request.temperature == 0.3
        assert request.user == '7'
        assert 'GB job market' in request.messages[0]['content']

    def test_empty_response_is_a_transient_failure(self, providers):
        providers[OPENAI].queue("   ")
        with pytest.raises(EmptyResponseError):
            ResumeOptimizer(providers).optimize(resume_inputs(), CONTEXT)

    def test_extract_keywords_parses_list(self, providers):
        providers[OPENAI].queue("1. Python, Flask,\n- PostgreSQL, AWS, python, Kubernetes")
        keywords = ResumeOptimizer(providers).extract_keywords(JOB_DESCRIPTION, CONTEXT)

        assert keywords == ['Python', 'Flask', 'PostgreSQL', 'AWS', 'Kubernetes']
        assert providers[OPENAI].requests[0].model == 'gpt-4o-mini'

    def test_ats_score_parses_explicit_score(self, providers):
        providers[OPENAI].queue("Score: 82\nKeyword Match: 70%\nMissing: Terraform")
        analysis = ResumeOptimizer(providers).ats_score(RESUME_TEXT, JOB_DESCRIPTION, CONTEXT)

        assert analysis.score == 82
        assert 'Terraform' in analysis.analysis


class TestExtractScore:

    def test_explicit_score(self):
        assert extract_score("Overall ATS Score (0-100): 74\nKeyword match 12 of 20") == 74

    def test_loose_score_is_capped(self):
        assert extract_score("The ATS rating comes to 140 points") == 100

    @pytest.mark.parametrize('text,low,high', [
        ("An excellent match overall.", 85, 95),
        ("A good fit with minor gaps.", 70, 84),
        ("A fair attempt.", 50, 69),
        ("Needs significant work.", 30, 49),
    ])
    def test_keyword_fallback_ranges(self, text, low, high):
        rng = random.Random(42)
        for _ in range(10):
            assert low <= extract_score(text, rng) <= high


class TestCoverLetterGenerator:

    @pytest.mark.parametrize('overrides', [
        {'tone': 'sarcastic'},
        {'length': 'epic'},
        {'company_name': 'A'},
        {'target_role': ''},
        {'resume_content': 'short resume'},
    ])
    def test_validation(self, providers, overrides):
        with pytest.raises(InvalidRequestError):
            CoverLetterGenerator(providers).generate(cover_inputs(**overrides), CONTEXT)
        assert providers.call_count == 0

    def test_professional_tone_uses_openai(self, providers):
        result = CoverLetterGenerator(providers).generate(cover_inputs(tone='professional'), CONTEXT)
        assert result.provider == OPENAI

    def test_enthusiastic_tone_uses_anthropic(self, providers):
        result = CoverLetterGenerator(providers).generate(cover_inputs(tone='enthusiastic', length='long'), CONTEXT)

        assert result.provider == ANTHROPIC
        request = providers[ANTHROPIC].requests[0]
        assert request.temperature == 0.7
        assert request.max_tokens == 900
        assert 'British business letter conventions' in request.messages[0]['content']

    def test_variation_index_selects_provider_and_approach(self, providers):
        generator = CoverLetterGenerator(providers)
        first = generator.generate_variation(cover_inputs(), 0, CONTEXT)
        second = generator.generate_variation(cover_inputs(), 1, CONTEXT)

        assert first.provider == OPENAI
        assert second.provider == ANTHROPIC
        assert 'VARIATION 1 APPROACH' in providers[OPENAI].requests[0].messages[1]['content']
        assert 'VARIATION 2 APPROACH' in providers[ANTHROPIC].requests[0].messages[1]['content']

    def test_personalize_for_company(self, providers):
        providers[ANTHROPIC].queue("Mention their open source work.")
        context = GenerationContext(user_id=1, preferred_provider=ANTHROPIC)

        suggestions = CoverLetterGenerator(providers).personalize_for_company(
            'Acme Corp', 'Engineer', JOB_DESCRIPTION, context
        )

        assert suggestions == "Mention their open source work."
        assert providers[ANTHROPIC].requests[0].temperature == 0.4
