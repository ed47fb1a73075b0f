"""Practice session state machine.

One controller drives one session of a single exercise kind:

    Idle -> RequestingContent -> Presenting -> Submitted -> (Completed | RequestingContent)

Content requests are awaited before Presenting is reached. Illustrations are fetched in
background tasks and applied only while the attempt that asked for them is still current.
"""

import asyncio
import uuid
from typing import Any

import structlog

from lingua_missions.assessment.scorer import score_exercise
from lingua_missions.curriculum.levels import describe
from lingua_missions.errors import (
    ContentProviderFailure,
    IllustrationFailure,
    InvalidResponse,
    InvalidTransition,
    MalformedExercise,
    RecognitionFailure,
)
from lingua_missions.models.exercise import ExerciseKind
from lingua_missions.models.session import (
    AttemptState,
    AttemptStatus,
    AttemptView,
    CompletionEvent,
    SessionError,
    SessionSnapshot,
    SessionState,
    Verdict,
)
from lingua_missions.session.policy import should_complete
from lingua_missions.session.ports import (
    ContentProvider,
    ContentRequest,
    IllustrationProvider,
    SpeechRecognizer,
    SpeechSynthesizer,
)

logger = structlog.get_logger()

LANGUAGE_TAGS = {"en": "en-US", "zh": "zh-CN"}

# Kinds that collect a partial response via select() before submit()
_SELECTABLE = (ExerciseKind.MULTI_CLOZE, ExerciseKind.READING_COMPREHENSION)
# Kinds whose submit() needs an explicit learner response
_RESPONSE_REQUIRED = (
    ExerciseKind.NARRATIVE_STEP,
    ExerciseKind.TENSE_CLOZE,
    ExerciseKind.LISTENING_COMPREHENSION,
    ExerciseKind.SPEAKING_CHALLENGE,
)


class SessionController:
    """Drives one practice session against injected content and speech ports.

    The controller never awards XP itself. When the session completes it records a
    ``CompletionEvent`` and the caller passes its ``xp`` to a ``ProgressionTracker``.

    Args:
        content: Content provider port.
        illustrations: Optional illustration port. Sessions run without imagery when None.
        synthesizer: Optional speech synthesis port.
        recognizer: Optional speech recognition port (speaking challenges).
        language: Learner interface language ("en" or "zh").
        session_id: Identifier; a UUID is generated when omitted.
    """

    def __init__(
        self,
        content: ContentProvider,
        illustrations: IllustrationProvider | None = None,
        synthesizer: SpeechSynthesizer | None = None,
        recognizer: SpeechRecognizer | None = None,
        language: str = "en",
        session_id: str | None = None,
    ):
        self.content = content
        self.illustrations = illustrations
        self.synthesizer = synthesizer
        self.recognizer = recognizer
        self.language = language
        self.session_id = session_id or str(uuid.uuid4())

        self.state = SessionState.IDLE
        self.kind: ExerciseKind | None = None
        self.difficulty: int | None = None
        self.params: dict[str, Any] = {}
        self.attempt: AttemptState | None = None
        self.error: SessionError | None = None
        self.completion: CompletionEvent | None = None

        # Cross-instance state
        self.tense_streak = 0
        self.story_history: list[str] = []
        self.instances = 0
        self._last_choice: str | None = None

        self._generation = 0
        self._illustration_tasks: set[asyncio.Task] = set()

    # -- lifecycle -----------------------------------------------------------------

    async def start(
        self, kind: ExerciseKind | str, difficulty: int, **params: Any
    ) -> SessionSnapshot:
        """Begin a session, or re-issue a failed content request.

        Called again while still in RequestingContent for the same kind, the pending
        request is re-issued and cross-instance counters are kept.

        Raises:
            InvalidDifficulty: ``difficulty`` outside 1-10.
            InvalidTransition: An exercise is being presented or was just submitted.
        """
        kind = ExerciseKind(kind)
        describe(difficulty)
        if self.state in (SessionState.PRESENTING, SessionState.SUBMITTED):
            raise InvalidTransition(f"start not allowed in state {self.state}; abort first")

        resuming = self.state == SessionState.REQUESTING_CONTENT and self.kind == kind
        if resuming:
            self.params = {**self.params, **params}
        else:
            self._reset()
            self.params = dict(params)
        self.kind = kind
        self.difficulty = difficulty

        logger.info(
            "session_started",
            session_id=self.session_id,
            kind=kind.value,
            difficulty=difficulty,
            resumed=resuming,
        )
        await self._request_content()
        return self.snapshot()

    async def advance(self) -> CompletionEvent | None:
        """Complete the session or load the next instance of the same kind.

        Returns:
            The completion event, or None when another instance was requested.
        """
        self._require("advance", SessionState.SUBMITTED)
        verdict = self.attempt.verdict
        if should_complete(self.kind, verdict, self.tense_streak):
            return self._complete(verdict.xp)
        await self._request_content()
        return None

    def finish(self) -> CompletionEvent:
        """End a narrative session. Stories carry no award."""
        self._require(
            "finish",
            SessionState.PRESENTING,
            SessionState.SUBMITTED,
            kinds=(ExerciseKind.NARRATIVE_STEP,),
        )
        return self._complete(0)

    async def retry(self) -> SessionSnapshot:
        """Discard the current instance and fetch a fresh one. Pays nothing."""
        self._require(
            "retry",
            SessionState.REQUESTING_CONTENT,
            SessionState.PRESENTING,
            SessionState.SUBMITTED,
        )
        logger.info("exercise_retry", session_id=self.session_id, kind=self.kind.value)
        await self._request_content()
        return self.snapshot()

    def abort(self) -> None:
        """Leave the session. Late content, illustration and recognition results are ignored."""
        self._generation += 1
        self._discard_attempt()
        self._reset()
        self.state = SessionState.IDLE
        logger.info("session_aborted", session_id=self.session_id)

    # -- learner input -------------------------------------------------------------

    def select(self, key: int | str, value: Any) -> dict[int, Any]:
        """Record one blank or question answer without scoring it.

        Returns:
            The pending response so far.

        Raises:
            InvalidResponse: Unknown blank id / question index, or an option that does
                not exist.
        """
        self._require("select", SessionState.PRESENTING, kinds=_SELECTABLE)
        exercise = self.attempt.exercise
        try:
            key = int(key)
        except (TypeError, ValueError) as e:
            raise InvalidResponse(f"selection key must be an integer, got {key!r}") from e

        if self.kind == ExerciseKind.MULTI_CLOZE:
            blank = exercise.blank(key)
            if blank is None:
                raise InvalidResponse(f"no blank with id {key}")
            if value not in blank.options:
                raise InvalidResponse(f"{value!r} is not an option for blank {key}")
        else:
            if not 0 <= key < len(exercise.questions):
                raise InvalidResponse(f"no question at index {key}")
            options = exercise.questions[key].options
            valid = isinstance(value, int) and not isinstance(value, bool)
            if not valid or not 0 <= value < len(options):
                raise InvalidResponse(f"{value!r} is not an option index for question {key}")

        pending = dict(self.attempt.response or {})
        pending[key] = value
        self.attempt.response = pending
        return pending

    def submit(self, response: Any = None) -> Verdict:
        """Score the presented exercise.

        Args:
            response: The learner's answer. Omit it for kinds that collect input via
                ``select`` or ``next_word``, and for grammar checks.

        Raises:
            InvalidTransition: Nothing is being presented.
            InvalidResponse: The response is missing or refers to something that does
                not exist.
        """
        self._require("submit", SessionState.PRESENTING)
        exercise = self.attempt.exercise
        if response is None:
            response = self._pending_response()

        verdict = score_exercise(exercise, response)

        if self.kind == ExerciseKind.TENSE_CLOZE:
            self.tense_streak = self.tense_streak + 1 if verdict.correct else 0
            logger.info("tense_streak", session_id=self.session_id, streak=self.tense_streak)
        elif self.kind == ExerciseKind.NARRATIVE_STEP:
            self.story_history.extend([exercise.text, f"User chose: {response}"])
            self._last_choice = response

        self.attempt.response = response
        self.attempt.verdict = verdict
        self.attempt.status = AttemptStatus.ANSWERED
        self.state = SessionState.SUBMITTED
        logger.info(
            "submission_scored",
            session_id=self.session_id,
            kind=self.kind.value,
            correct=verdict.correct,
            score=verdict.score,
            xp=verdict.xp,
        )
        return verdict

    def next_word(self) -> Verdict | None:
        """Move to the next vocabulary word.

        Returns:
            The set's verdict once the learner moves past the last word, otherwise None.
        """
        self._require(
            "next_word", SessionState.PRESENTING, kinds=(ExerciseKind.VOCABULARY,)
        )
        self.attempt.word_index += 1
        self.attempt.illustration = None
        if self.attempt.word_index >= len(self.attempt.exercise.words):
            return self.submit(self.attempt.word_index)
        return None

    def visualize_word(self) -> None:
        """Request an illustration of the current vocabulary word."""
        self._require(
            "visualize_word", SessionState.PRESENTING, kinds=(ExerciseKind.VOCABULARY,)
        )
        word = self.attempt.exercise.words[self.attempt.word_index].word
        self._spawn_illustration(word, word_index=self.attempt.word_index)

    async def listen(self) -> Verdict | None:
        """Capture the learner reading the speaking phrase and score it.

        Returns:
            The verdict, or None if recognition failed or the attempt was superseded
            while listening. Failures are exposed on ``error`` and the attempt.

        Raises:
            InvalidTransition: Not presenting a speaking challenge, or already listening.
        """
        self._require(
            "listen", SessionState.PRESENTING, kinds=(ExerciseKind.SPEAKING_CHALLENGE,)
        )
        attempt = self.attempt
        if attempt.listening:
            raise InvalidTransition("a recognition is already in progress")

        generation = self._generation
        attempt.listening = True
        attempt.recognition_error = None
        self.error = None
        self.stop_audio()
        try:
            if self.recognizer is None:
                raise RecognitionFailure("speech recognition is not available")
            transcript = await self.recognizer.listen()
        except RecognitionFailure as e:
            attempt.listening = False
            if generation == self._generation:
                logger.warning("recognition_failed", session_id=self.session_id, error=str(e))
                attempt.recognition_error = str(e)
                self.error = SessionError.from_exception(e)
            return None

        attempt.listening = False
        if generation != self._generation or self.attempt is not attempt:
            logger.info("stale_transcript_discarded", session_id=self.session_id)
            return None
        if self.state != SessionState.PRESENTING:
            logger.info("late_transcript_discarded", session_id=self.session_id, state=self.state)
            return None
        attempt.transcript = transcript
        return self.submit(transcript)

    # -- audio ---------------------------------------------------------------------

    def speak(self, text: str, language: str = "en") -> None:
        if self.synthesizer is None:
            logger.debug("speech_synthesis_unavailable")
            return
        self.synthesizer.speak(text, LANGUAGE_TAGS.get(language, LANGUAGE_TAGS["en"]))

    def stop_audio(self) -> None:
        if self.synthesizer is not None:
            self.synthesizer.stop()

    def play_script(self) -> None:
        """Read the hidden listening script aloud."""
        self._require(
            "play_script",
            SessionState.PRESENTING,
            SessionState.SUBMITTED,
            kinds=(ExerciseKind.LISTENING_COMPREHENSION,),
        )
        self.speak(self.attempt.exercise.audio_script)

    def read_aloud(self) -> None:
        """Speak the main text of the current exercise.

        A cloze passage is only read after submission, with the blanks filled in.
        """
        self._require("read_aloud", SessionState.PRESENTING, SessionState.SUBMITTED)
        exercise = self.attempt.exercise
        match self.kind:
            case ExerciseKind.VOCABULARY:
                index = min(self.attempt.word_index, len(exercise.words) - 1)
                text = exercise.words[index].word
            case ExerciseKind.GRAMMAR_CHECK:
                text = exercise.corrected
            case ExerciseKind.NARRATIVE_STEP:
                text = exercise.text
            case ExerciseKind.TENSE_CLOZE:
                submitted = self.state == SessionState.SUBMITTED
                filler = exercise.correct_answer if submitted else "blank"
                text = filler.join(exercise.segments())
            case ExerciseKind.MULTI_CLOZE:
                if self.state != SessionState.SUBMITTED:
                    raise InvalidTransition("the cloze passage is read after submission")
                text = exercise.full_text()
            case ExerciseKind.READING_COMPREHENSION:
                text = exercise.passage
            case ExerciseKind.LISTENING_COMPREHENSION:
                text = exercise.audio_script
            case ExerciseKind.SPEAKING_CHALLENGE:
                text = exercise.phrase
        self.speak(text)

    # -- illustrations -------------------------------------------------------------

    @property
    def illustration(self) -> bytes | None:
        return self.attempt.illustration if self.attempt else None

    async def wait_for_illustrations(self) -> None:
        """Wait for in-flight illustration requests to settle."""
        if self._illustration_tasks:
            await asyncio.gather(*list(self._illustration_tasks), return_exceptions=True)

    def _spawn_illustration(self, prompt: str, word_index: int | None = None) -> None:
        if self.illustrations is None:
            return
        task = asyncio.create_task(
            self._fetch_illustration(self.attempt.attempt_id, prompt, word_index)
        )
        self._illustration_tasks.add(task)
        task.add_done_callback(self._illustration_tasks.discard)

    async def _fetch_illustration(
        self, attempt_id: str, prompt: str, word_index: int | None
    ) -> None:
        try:
            image = await self.illustrations.request(prompt)
        except IllustrationFailure as e:
            logger.warning("illustration_failed", session_id=self.session_id, error=str(e))
            return

        attempt = self.attempt
        if attempt is None or attempt.attempt_id != attempt_id:
            logger.debug("stale_illustration_discarded", session_id=self.session_id)
            return
        if word_index is not None and attempt.word_index != word_index:
            logger.debug("stale_illustration_discarded", session_id=self.session_id)
            return
        attempt.illustration = image

    # -- internals -----------------------------------------------------------------

    async def _request_content(self) -> None:
        self._discard_attempt()
        self._generation += 1
        generation = self._generation
        self.state = SessionState.REQUESTING_CONTENT
        self.error = None
        self.attempt = AttemptState(kind=self.kind)

        request = ContentRequest(
            kind=self.kind,
            difficulty=self.difficulty,
            curriculum=describe(self.difficulty),
            params=self._request_params(),
            language=self.language,
        )
        try:
            exercise = await self.content.generate(request)
            if exercise.kind != self.kind:
                raise MalformedExercise(
                    f"requested {self.kind.value}, provider returned {exercise.kind.value}"
                )
        except (ContentProviderFailure, MalformedExercise) as e:
            if generation != self._generation:
                return
            logger.warning(
                "content_request_failed",
                session_id=self.session_id,
                kind=self.kind.value,
                error_kind=e.error_kind.value,
                error=str(e),
            )
            self.error = SessionError.from_exception(e)
            return

        if generation != self._generation:
            logger.info("stale_content_discarded", session_id=self.session_id)
            return

        self.attempt.exercise = exercise
        self.attempt.status = AttemptStatus.PRESENTED
        self.state = SessionState.PRESENTING
        self.instances += 1
        logger.info(
            "content_received",
            session_id=self.session_id,
            kind=self.kind.value,
            instance=self.instances,
        )
        if exercise.image_prompt:
            self._spawn_illustration(exercise.image_prompt)

    def _request_params(self) -> dict[str, Any]:
        if self.kind == ExerciseKind.NARRATIVE_STEP:
            return {
                **self.params,
                "history": list(self.story_history),
                "choice": self._last_choice,
            }
        return dict(self.params)

    def _pending_response(self) -> Any:
        if self.kind in _RESPONSE_REQUIRED:
            raise InvalidResponse(f"{self.kind.value} submissions need a response")
        if self.kind == ExerciseKind.VOCABULARY:
            return self.attempt.word_index
        if self.kind == ExerciseKind.GRAMMAR_CHECK:
            return self.params.get("sentence")
        return self.attempt.response or {}

    def _complete(self, xp: int) -> CompletionEvent:
        self.attempt.status = AttemptStatus.COMPLETED
        self.state = SessionState.COMPLETED
        self.completion = CompletionEvent(
            session_id=self.session_id,
            kind=self.kind,
            xp=xp,
            instances=self.instances,
        )
        logger.info(
            "session_completed",
            session_id=self.session_id,
            kind=self.kind.value,
            xp=xp,
            instances=self.instances,
        )
        return self.completion

    def _discard_attempt(self) -> None:
        for task in self._illustration_tasks:
            task.cancel()
        self._illustration_tasks.clear()
        self.stop_audio()
        if self.attempt is not None and self.attempt.listening and self.recognizer is not None:
            self.recognizer.stop()

    def _reset(self) -> None:
        self.attempt = None
        self.error = None
        self.completion = None
        self.tense_streak = 0
        self.story_history = []
        self.instances = 0
        self._last_choice = None

    def _require(
        self,
        action: str,
        *states: SessionState,
        kinds: tuple[ExerciseKind, ...] | None = None,
    ) -> None:
        if self.state not in states:
            raise InvalidTransition(f"{action} not allowed in state {self.state}")
        if kinds is not None and self.kind not in kinds:
            raise InvalidTransition(f"{action} not available for {self.kind}")

    def snapshot(self) -> SessionSnapshot:
        attempt = AttemptView.of(self.attempt) if self.attempt else None
        return SessionSnapshot(
            session_id=self.session_id,
            state=self.state,
            kind=self.kind,
            difficulty=self.difficulty,
            tense_streak=self.tense_streak,
            instances=self.instances,
            attempt=attempt,
            has_illustration=self.illustration is not None,
            error=self.error,
            completion=self.completion,
        )
