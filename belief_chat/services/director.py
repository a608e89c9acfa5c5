"""
Conversation Director.

Main entry point for interview turn processing. For each participant utterance:

1. Load the conversation (re-read from disk) and reconcile the participant copy
2. Classify the utterance and update counters
3. Apply at most one stage transition (or terminate on an end request)
4. Assemble the prompt and call the Reply Generator under a deadline
5. Fall back to a canned reply if the generator fails
6. Post-process the reply (marker, topic guard, repeated openings)
7. Persist the conversation, then the participant

The Director is the only writer of ConversationState. Turns for one
conversation are serialized by a per-conversation asyncio.Lock; different
conversations proceed independently.
"""

import asyncio
import weakref
from dataclasses import dataclass
from typing import Dict, Optional, Sequence
from uuid import uuid4

import structlog

from belief_chat.core.config import InterviewConfig, interview_config, settings
from belief_chat.core.exceptions import (
    ConversationNotFoundError,
    ConversationTerminatedError,
    GeneratorError,
    ParticipantNotFoundError,
    PersistenceError,
    ValidationError,
)
from belief_chat.core.logging import bind_context
from belief_chat.domain.models.base import utc_now_iso
from belief_chat.domain.models.conversation import Conversation, ConversationState
from belief_chat.domain.models.message import StoredMessage, TurnMetadata
from belief_chat.domain.models.participant import Participant
from belief_chat.domain.models.stage import Stage
from belief_chat.llm.client import ReplyGenerator
from belief_chat.llm.prompts.interview import get_opening_line
from belief_chat.persistence.repositories.conversation_repo import ConversationRepository
from belief_chat.persistence.repositories.participant_repo import ParticipantRepository
from belief_chat.services.classifier import (
    Classification,
    classify,
    normalize,
    requests_end,
)
from belief_chat.services.fallback import FallbackReplyPool, closing_summary
from belief_chat.services.prompt_assembler import (
    AssembledPrompt,
    assemble_closing_prompt,
    assemble_turn_prompt,
)
from belief_chat.services.reply_policy import polish_reply, strip_completion_marker
from belief_chat.services.stage_policy import Transition, evaluate_transition

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StartResult:
    """Result of starting (or resuming) a conversation."""

    conversation: Conversation
    resumed: bool = False


@dataclass(frozen=True)
class TurnResult:
    """Result of processing one participant utterance."""

    conversation_id: str
    turn: int
    reply: str
    stage: Stage
    fallback: bool = False

    @property
    def terminated(self) -> bool:
        return self.stage is Stage.TERMINATED


class ConversationDirector:
    """Orchestrates interview turns over the participant and conversation stores."""

    def __init__(
        self,
        participant_repo: ParticipantRepository,
        conversation_repo: ConversationRepository,
        generator: ReplyGenerator,
        config: Optional[InterviewConfig] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        fallback_pool: Optional[FallbackReplyPool] = None,
    ):
        """
        Initialize the director.

        Args:
            participant_repo: Participant document repository
            conversation_repo: Conversation document repository
            generator: Reply Generator adapter
            config: Interview calibration (defaults to interview_config.yaml)
            timeout: Per-attempt generator deadline in seconds
                (defaults to settings.generator_timeout)
            retries: Extra generator attempts before falling back
                (defaults to settings.generator_retries)
            fallback_pool: Canned replies used when generation fails
        """
        self.participants = participant_repo
        self.conversations = conversation_repo
        self.generator = generator
        self.config = config or interview_config
        self.timeout = timeout if timeout is not None else settings.generator_timeout
        self.retries = retries if retries is not None else settings.generator_retries
        self.fallback_pool = fallback_pool or FallbackReplyPool()

        # Locks live only while a turn holds or awaits them
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

        log.info(
            "director_initialized",
            provider=getattr(generator, "provider_name", type(generator).__name__),
            timeout=self.timeout,
            retries=self.retries,
        )

    def _lock_for(self, conversation_id: str) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        return lock

    # ==========================================================================
    # start
    # ==========================================================================

    async def start(self, participant_id: str) -> StartResult:
        """
        Create a conversation seeded with the opening line, or resume an open one.

        Raises:
            ParticipantNotFoundError: Unknown participant
            ConversationTerminatedError: The participant's conversation has ended
        """
        participant = self.participants.get(participant_id)
        if participant is None:
            raise ParticipantNotFoundError(f"Participant {participant_id} not found")

        existing_id = participant.chatbot_interaction.conversation_id
        if existing_id:
            existing = self.conversations.get(existing_id)
            if existing is not None:
                if existing.state.is_terminated:
                    raise ConversationTerminatedError(
                        f"Conversation {existing_id} has already ended"
                    )
                log.info(
                    "conversation_resumed",
                    conversation_id=existing_id,
                    participant_id=participant_id,
                )
                return StartResult(conversation=existing, resumed=True)

        conversation_id = str(uuid4())
        bind_context(conversation_id=conversation_id)

        opening = StoredMessage.create(
            role="assistant",
            text=get_opening_line(participant.survey),
            turn=0,
            conversation_id=conversation_id,
            metadata=TurnMetadata(opening=True),
        )
        conversation = Conversation(
            id=conversation_id,
            participant_id=participant_id,
            started_at=utc_now_iso(),
            messages=[opening],
        )
        self.conversations.create(conversation)

        linked = participant.model_copy(deep=True)
        linked.chatbot_interaction.conversation_id = conversation_id
        linked.updated_at = utc_now_iso()
        self.participants.save(linked)

        return StartResult(conversation=conversation)

    # ==========================================================================
    # reply
    # ==========================================================================

    async def reply(self, conversation_id: str, text: str) -> TurnResult:
        """
        Process one participant utterance and return the assistant reply.

        Raises:
            ValidationError: Empty or over-long utterance
            ConversationNotFoundError: Unknown conversation
            ConversationTerminatedError: Conversation already terminated
            PersistenceError: The turn could not be written (nothing is kept)
        """
        text = self._validate_text(text)

        async with self._lock_for(conversation_id):
            bind_context(conversation_id=conversation_id)
            conversation = self._load_open(conversation_id)
            participant = self._load_participant(conversation)
            return await self._run_turn(conversation, participant, text)

    def _validate_text(self, text: str) -> str:
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Message cannot be empty", field="content")
        text = text.strip()
        if len(text) > self.config.max_message_length:
            raise ValidationError(
                f"Message exceeds {self.config.max_message_length} characters",
                field="content",
            )
        return text

    def _load_open(self, conversation_id: str) -> Conversation:
        conversation = self.conversations.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
        if conversation.state.is_terminated:
            raise ConversationTerminatedError(
                f"Conversation {conversation_id} has already ended"
            )
        return conversation

    def _load_participant(self, conversation: Conversation) -> Participant:
        """
        Load the participant and repair its transcript copy if a previous
        turn stopped between the two writes.
        """
        participant = self.participants.get(conversation.participant_id)
        if participant is None:
            raise ParticipantNotFoundError(
                f"Participant {conversation.participant_id} not found"
            )

        transcript = conversation.transcript
        stored = participant.chatbot_interaction.messages
        if [m.message_id for m in stored] != [m.message_id for m in transcript]:
            log.warning(
                "participant_transcript_repaired",
                participant_id=participant.id,
                stored_messages=len(stored),
                transcript_messages=len(transcript),
            )
            participant.chatbot_interaction.messages = list(transcript)
            participant.chatbot_interaction.conversation_id = conversation.id
            participant.updated_at = utc_now_iso()
            self.participants.save(participant)

        return participant

    def _is_end_request(self, text: str) -> bool:
        normalized = normalize(text)
        return requests_end(normalized, self.config.end_phrases)

    async def _run_turn(
        self, conversation: Conversation, participant: Participant, text: str
    ) -> TurnResult:
        # Work on a copy so a failed write leaves nothing behind in memory
        state = conversation.state.model_copy(deep=True)
        classification = classify(text)
        turn = state.turn_count + 1

        state.turn_count = turn
        state.topic_turn_count += 1
        if classification.substantive:
            state.substantive_response_count += 1
        elif classification.minimal:
            state.minimal_response_count += 1
        if classification.exhaustion:
            state.exhaustion_signals += 1
        for influence in classification.influences:
            state.add_influence(influence)
        for topic in classification.topics:
            state.add_topic(topic)

        transition = evaluate_transition(state, self.config.thresholds)
        if self._is_end_request(text):
            transition = Transition(state.stage, Stage.TERMINATED, "end_requested")
        if transition is not None:
            self._apply_transition(state, transition, turn)

        history = conversation.history() + [{"role": "user", "content": text}]
        if state.is_terminated:
            prompt = assemble_closing_prompt(state, participant.survey, history)
        else:
            prompt = assemble_turn_prompt(state, participant.survey, history)

        try:
            generated = await self._generate(prompt, turn)
        except asyncio.CancelledError:
            # Client went away: keep the counters and a fallback reply
            log.warning("turn_cancelled_during_generation", turn=turn)
            self._commit_turn(conversation, participant, state, text, classification, None)
            raise

        return self._commit_turn(
            conversation, participant, state, text, classification, generated
        )

    def _apply_transition(
        self, state: ConversationState, transition: Transition, turn: int
    ) -> None:
        state.stage = transition.to_stage
        state.topic_turn_count = 0
        log.info(
            "stage_transition",
            from_stage=transition.from_stage.value,
            to_stage=transition.to_stage.value,
            reason=transition.reason,
            turn=turn,
            **state.counters(),
        )

    async def _generate(self, prompt: AssembledPrompt, turn: int) -> Optional[str]:
        """
        Call the Reply Generator with a deadline and the configured retries.

        Returns:
            Generated text, or None if every attempt failed
        """
        attempts = self.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return await asyncio.wait_for(
                    self.generator.generate(prompt.prompt, prompt.history),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError:
                log.warning(
                    "generator_deadline_exceeded",
                    turn=turn,
                    attempt=attempt,
                    timeout_seconds=self.timeout,
                )
            except GeneratorError as e:
                log.warning(
                    "generator_failed",
                    turn=turn,
                    attempt=attempt,
                    error_type=type(e).__name__,
                    error=e.message,
                )
            except Exception as e:
                # Adapters outside this package may not map their errors
                log.error(
                    "generator_unexpected_error",
                    turn=turn,
                    attempt=attempt,
                    error_type=type(e).__name__,
                    error=str(e),
                    exc_info=e,
                )

        log.warning("generator_fallback_used", turn=turn, attempts=attempts)
        return None

    def _commit_turn(
        self,
        conversation: Conversation,
        participant: Participant,
        state: ConversationState,
        text: str,
        classification: Classification,
        generated: Optional[str],
    ) -> TurnResult:
        turn = state.turn_count
        closing = state.is_terminated

        if generated is not None and not strip_completion_marker(generated):
            generated = None
        fallback = generated is None

        if closing:
            if fallback:
                messages = conversation.messages + [
                    StoredMessage.create("user", text, turn, conversation.id)
                ]
                reply = closing_summary(
                    messages, participant.survey.get("change_description")
                )
            else:
                reply = strip_completion_marker(generated)
        else:
            if fallback:
                reply, state.fallback_cursor = self.fallback_pool.pick(
                    state.fallback_cursor, conversation.last_assistant_text
                )
            else:
                reply = generated
            polished = polish_reply(
                reply, state.response_patterns, turn, guard_topic=not fallback
            )
            reply = polished.text
            state.response_patterns = polished.patterns

        user_message = StoredMessage.create(
            role="user",
            text=text,
            turn=turn,
            conversation_id=conversation.id,
            metadata=classification.to_metadata(state.stage),
        )
        assistant_message = StoredMessage.create(
            role="assistant",
            text=reply,
            turn=turn,
            conversation_id=conversation.id,
            metadata=classification.to_metadata(
                state.stage, fallback=fallback, closing=closing
            ),
        )

        self._persist_turn(
            conversation, participant, state, [user_message, assistant_message]
        )

        log.info(
            "turn_processed",
            turn=turn,
            stage=state.stage.value,
            fallback=fallback,
            minimal=classification.minimal,
            exhaustion=classification.exhaustion,
            influences=len(classification.influences),
        )
        if closing:
            log.info("conversation_ended", turn=turn, reason="stage_terminated")

        return TurnResult(
            conversation_id=conversation.id,
            turn=turn,
            reply=reply,
            stage=state.stage,
            fallback=fallback,
        )

    def _persist_turn(
        self,
        conversation: Conversation,
        participant: Participant,
        state: ConversationState,
        new_messages: Sequence[StoredMessage],
    ) -> None:
        """
        Write the conversation, then the participant.

        A crash between the writes leaves the participant transcript a prefix
        of the conversation transcript; the next turn repairs it. If the
        participant write fails the conversation is restored.
        """
        updated = conversation.model_copy(
            update={
                "state": state,
                "messages": conversation.messages + list(new_messages),
                "ended_at": utc_now_iso() if state.is_terminated else conversation.ended_at,
            }
        )
        self.conversations.save(updated)

        updated_participant = participant.model_copy(deep=True)
        updated_participant.chatbot_interaction.conversation_id = conversation.id
        updated_participant.chatbot_interaction.messages.extend(new_messages)
        updated_participant.updated_at = utc_now_iso()

        try:
            self.participants.save(updated_participant)
        except PersistenceError:
            log.error("participant_write_failed", participant_id=participant.id)
            try:
                self.conversations.save(conversation)
            except PersistenceError:
                log.error("conversation_rollback_failed")
            raise

    # ==========================================================================
    # end
    # ==========================================================================

    async def end(self, conversation_id: str) -> Conversation:
        """
        Force the conversation to terminated. Ending twice is a no-op.

        Raises:
            ConversationNotFoundError: Unknown conversation
        """
        async with self._lock_for(conversation_id):
            bind_context(conversation_id=conversation_id)
            conversation = self.conversations.get(conversation_id)
            if conversation is None:
                raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
            if conversation.state.is_terminated:
                return conversation

            state = conversation.state.model_copy(deep=True)
            self._apply_transition(
                state,
                Transition(state.stage, Stage.TERMINATED, "end_requested"),
                state.turn_count,
            )
            ended = conversation.model_copy(
                update={"state": state, "ended_at": utc_now_iso()}
            )
            self.conversations.save(ended)
            log.info("conversation_ended", turn=state.turn_count, reason="end_requested")
            return ended

    # ==========================================================================
    # Reads
    # ==========================================================================

    def get_conversation(self, conversation_id: str) -> Conversation:
        conversation = self.conversations.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
        return conversation

    def get_participant_document(self, participant_id: str) -> Dict:
        document = self.participants.get_document(participant_id)
        if document is None:
            raise ParticipantNotFoundError(f"Participant {participant_id} not found")
        return document
