"""Tests for guarded artifact status transitions."""
import threading

import pytest

from models import db
from models.cover_letter import CoverLetter
from models.resume import Resume
from resume_forge.services.state_machine import COVER_LETTER_STATES, RESUME_STATES
from utils.exceptions import GenerationConflictError, InvalidTransitionError, StaleRecordError


@pytest.fixture
def resume_id(make_resume, user_id):
    return make_resume(user_id)


class TestBeginGeneration:

    def test_draft_moves_to_processing(self, app, resume_id):
        with app.app_context():
            RESUME_STATES.begin_generation(resume_id)
            assert db.session.get(Resume, resume_id).status == 'processing'

    def test_second_request_is_rejected(self, app, resume_id):
        with app.app_context():
            RESUME_STATES.begin_generation(resume_id)
            with pytest.raises(GenerationConflictError):
                RESUME_STATES.begin_generation(resume_id)

    @pytest.mark.parametrize('status', ['optimized', 'failed'])
    def test_terminal_states_can_restart(self, app, make_resume, user_id, status):
        resume_id = make_resume(user_id, status=status, optimized_content='Earlier output')
        with app.app_context():
            RESUME_STATES.begin_generation(resume_id)
            assert db.session.get(Resume, resume_id).status == 'processing'

    def test_missing_artifact_is_stale(self, app):
        with app.app_context():
            with pytest.raises(StaleRecordError):
                RESUME_STATES.begin_generation(9999)

    def test_cover_letters_use_their_own_states(self, app, make_cover_letter, user_id):
        cover_letter_id = make_cover_letter(user_id)
        with app.app_context():
            COVER_LETTER_STATES.begin_generation(cover_letter_id)
            assert db.session.get(CoverLetter, cover_letter_id).status == 'generating'


class TestFinish:

    def test_complete_sets_output_and_status_together(self, app, resume_id):
        with app.app_context():
            RESUME_STATES.begin_generation(resume_id)
            assert RESUME_STATES.complete(resume_id, optimized_content='Better resume', provider='openai')

            resume = db.session.get(Resume, resume_id)
            assert resume.status == 'optimized'
            assert resume.optimized_content == 'Better resume'

    def test_complete_requires_in_flight(self, app, resume_id):
        with app.app_context():
            assert not RESUME_STATES.complete(resume_id, optimized_content='Late result')
            resume = db.session.get(Resume, resume_id)
            assert resume.status == 'draft'
            assert resume.optimized_content is None

    def test_fail_keeps_previous_output(self, app, make_resume, user_id):
        resume_id = make_resume(user_id, status='optimized', optimized_content='Earlier output', ats_score=61)
        with app.app_context():
            RESUME_STATES.begin_generation(resume_id)
            assert RESUME_STATES.fail(resume_id, reason='provider timeout')

            resume = db.session.get(Resume, resume_id)
            assert resume.status == 'failed'
            assert resume.optimized_content == 'Earlier output'
            assert resume.ats_score == 61


class TestBeginRework:

    def test_requires_success_with_output(self, app, resume_id):
        with app.app_context():
            with pytest.raises(InvalidTransitionError):
                RESUME_STATES.begin_rework(resume_id)

    def test_keeps_output_while_in_flight(self, app, make_resume, user_id):
        resume_id = make_resume(user_id, status='optimized', optimized_content='Optimized text')
        with app.app_context():
            RESUME_STATES.begin_rework(resume_id)
            resume = db.session.get(Resume, resume_id)
            assert resume.status == 'processing'
            assert resume.optimized_content == 'Optimized text'

    def test_conflicts_with_running_job(self, app, make_resume, user_id):
        resume_id = make_resume(user_id, status='processing', optimized_content='Optimized text')
        with app.app_context():
            with pytest.raises(GenerationConflictError):
                RESUME_STATES.begin_rework(resume_id)


def test_concurrent_requests_yield_one_transition(make_app, tmp_path):
    """Back-to-back requests for one artifact: exactly one moves it into flight."""
    from models.user import User

    app = make_app(SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'states.db'}")
    with app.app_context():
        user = User(email='racer@example.com')
        db.session.add(user)
        db.session.commit()
        resume = Resume(user_id=user.id, original_content='x' * 120, target_role='Engineer')
        db.session.add(resume)
        db.session.commit()
        resume_id = resume.id

    outcomes = []
    barrier = threading.Barrier(6)

    def attempt():
        with app.app_context():
            barrier.wait()
            try:
                RESUME_STATES.begin_generation(resume_id)
                outcomes.append('accepted')
            except GenerationConflictError:
                outcomes.append('conflict')
            finally:
                db.session.remove()

    threads = [threading.Thread(target=attempt) for _ in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count('accepted') == 1
    assert outcomes.count('conflict') == 5
