"""
ConversationOrchestrator drives one user submission end to end.

The submission fans out to the enabled content sources (streamed answer,
video lookup) as independent tasks, waits for all of them to settle, merges
whatever succeeded and makes a single commit through the SessionRegistrar.
"""

import asyncio
import logging
from collections.abc import Callable
from contextlib import aclosing

from ..clients.base import TextGenerationClient, VideoSearchClient
from ..core.exceptions import SubmissionInProgressError, UnauthenticatedError
from ..core.identity import IdentityProvider
from ..core.models import Conversation, VideoReference
from ..core.turns import coerce_video
from .registrar import SessionRegistrar
from .types import ContentOptions, ContentResult, SubmissionState, SubmissionView

logger = logging.getLogger(__name__)


class ConversationOrchestrator:
    """
    Client-side submission state machine for one conversation.

    States run IDLE -> COMPOSING -> AWAITING_CONTENT -> COMMITTING -> IDLE and
    every submission ends in IDLE, whatever its outcome. Each submission gets
    a sequence number; content arriving for a superseded number is dropped.
    """

    def __init__(
        self,
        registrar: SessionRegistrar,
        identity: IdentityProvider,
        text_source: TextGenerationClient | None = None,
        video_source: VideoSearchClient | None = None,
        conversation_id: str | None = None,
        options: ContentOptions | None = None,
        on_change: Callable[[SubmissionView], None] | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            registrar: Commit target for assembled turns
            identity: Resolves the owner id at commit time
            text_source: Streaming answer generator
            video_source: Video lookup
            conversation_id: Existing conversation, None to create lazily
            options: Initial content source toggles
            on_change: Called with the view after every visible change
        """
        self.registrar = registrar
        self.identity = identity
        self.text_source = text_source
        self.video_source = video_source
        self.conversation_id = conversation_id
        self.options = options or ContentOptions()
        self.on_change = on_change

        self.state = SubmissionState.IDLE
        self.view = SubmissionView()
        self._submission_seq = 0
        self._tasks: list[asyncio.Task] = []

        logger.debug("ConversationOrchestrator initialized")

    @property
    def is_busy(self) -> bool:
        return self.state != SubmissionState.IDLE

    def toggle_option(self, option: str) -> bool:
        """Flip a content source toggle; refused while a submission is in flight."""
        if self.is_busy:
            logger.debug(f"Ignoring toggle of {option} during {self.state.value}")
            return False
        changed = self.options.toggle(option)
        if changed:
            self._notify()
        return changed

    async def submit(self, text: str, image: str | None = None) -> Conversation | None:
        """
        Run one submission.

        Args:
            text: User text; blank text is ignored
            image: Opaque reference to an already uploaded image

        Returns:
            The updated conversation, or None if the text was blank or the
            submission was superseded by a reset

        Raises:
            SubmissionInProgressError: Another submission is in flight
            UnauthenticatedError: No identity; nothing was committed
            DialogLedgerError: The commit failed
        """
        if self.is_busy:
            raise SubmissionInProgressError(
                "A submission is already in progress",
                details={"state": self.state.value},
            )

        text = (text or "").strip()
        if not text:
            logger.debug("Ignoring blank submission")
            return None

        self._submission_seq += 1
        seq = self._submission_seq

        self._set_state(SubmissionState.COMPOSING)
        self.view.draft_text = text
        self.view.partial_answer = ""
        self.view.answer_complete = False
        self.view.video_draft = None
        self.view.image = image
        self.view.error = None
        self._notify()

        try:
            content = await self._gather_content(seq, text)
            if not self._is_current(seq):
                logger.info(f"Discarding content of superseded submission {seq}")
                return None

            self._set_state(SubmissionState.COMMITTING)
            owner_id = await self.identity.get_owner_id()

            conversation = await self.registrar.commit_turns(
                owner_id,
                self.conversation_id,
                text,
                model_text=content.model_text or None,
                image=image,
                video=content.video,
            )
        except Exception as e:
            if self._is_current(seq):
                self.view.error = str(e)
                logger.error(f"Submission {seq} failed: {e}")
            raise
        finally:
            if self._is_current(seq):
                self._tasks = []
                self._set_state(SubmissionState.IDLE)
                self._notify()

        if not self._is_current(seq):
            logger.info(f"Submission {seq} committed after reset, view left untouched")
            return conversation

        self.conversation_id = conversation.id
        self.view.clear_transient()
        self.view.conversation = conversation
        self._notify()

        logger.info(
            f"Submission {seq} committed to conversation {conversation.id} "
            f"(skipped sources: {content.failures or 'none'})"
        )
        return conversation

    def reset(self) -> None:
        """
        Abandon any in-flight submission and return to IDLE.

        Running content tasks are cancelled; anything they still produce is
        discarded because the submission number has moved on.
        """
        self._submission_seq += 1
        for task in self._tasks:
            if not task.done():
                task.cancel()
        self._tasks = []

        conversation = self.view.conversation
        self.view = SubmissionView(conversation=conversation)
        self._set_state(SubmissionState.IDLE)
        self._notify()

    def open_conversation(self, conversation_id: str | None) -> None:
        """Switch to another conversation, or to a not-yet-created one with None."""
        self.reset()
        self.conversation_id = conversation_id
        self.view.conversation = None

    async def _gather_content(self, seq: int, text: str) -> ContentResult:
        """Fan out to enabled sources and wait until every one has settled."""
        self._set_state(SubmissionState.AWAITING_CONTENT)
        result = ContentResult()

        sources = []
        if self.options.text:
            if self.text_source is not None:
                sources.append(("text", self._stream_answer(seq, text)))
            else:
                logger.warning("Text generation enabled but no source configured")
                result.failures.append("text")
        if self.options.video:
            if self.video_source is not None:
                sources.append(("video", self._lookup_video(seq, text)))
            else:
                logger.warning("Video lookup enabled but no source configured")
                result.failures.append("video")

        self._tasks = [
            asyncio.create_task(coro, name=f"{name}-{seq}") for name, coro in sources
        ]
        outcomes = await asyncio.gather(*self._tasks, return_exceptions=True)

        for (name, _), outcome in zip(sources, outcomes):
            if isinstance(outcome, UnauthenticatedError):
                raise outcome
            if isinstance(outcome, BaseException):
                logger.warning(f"{name} source failed for submission {seq}: {outcome!r}")
                result.failures.append(name)
            elif name == "text":
                result.model_text = outcome
            else:
                result.video = outcome

        return result

    async def _stream_answer(self, seq: int, prompt: str) -> str:
        fragments: list[str] = []
        async with aclosing(self.text_source.generate(prompt)) as stream:
            async for fragment in stream:
                if not self._accepts_content(seq):
                    break
                fragments.append(fragment)
                self.view.partial_answer = "".join(fragments)
                self._notify()

        if self._accepts_content(seq):
            self.view.answer_complete = True
            self._notify()
        return "".join(fragments)

    async def _lookup_video(self, seq: int, query: str) -> VideoReference | None:
        video = coerce_video(await self.video_source.search(query))
        if self._accepts_content(seq):
            self.view.video_draft = video
            self._notify()
        return video

    def _is_current(self, seq: int) -> bool:
        return seq == self._submission_seq

    def _accepts_content(self, seq: int) -> bool:
        return self._is_current(seq) and self.state == SubmissionState.AWAITING_CONTENT

    def _set_state(self, state: SubmissionState) -> None:
        if state != self.state:
            logger.debug(f"Submission state {self.state.value} -> {state.value}")
        self.state = state

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.view)
