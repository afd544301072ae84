"""
Workflow state machine for documenting a collection.

Steps run in a fixed order from Setup to Completion. ``advance`` and
``retreat`` move one step at a time and never leave the range;
``jump_to`` moves anywhere without validation (sidebar navigation).
``validate_current_step`` is the gate a front end uses to enable its
"Next" control. The controller itself never refuses an ``advance``.
"""

import logging
from enum import Enum
from typing import List, Optional

from stromcollect.core.events import EventStore, SpecimenAdded, WorkflowStepChanged, publish
from stromcollect.core.models import Collection, SpecimenRecord

logger = logging.getLogger(__name__)

# Every specimen must score above this before the collection can be closed
MIN_REVIEW_QUALITY = 0.5


class WorkflowState(Enum):
    """Steps of the collection workflow, in order."""

    SETUP = "Setup Collection"
    DRAWER_OVERVIEW = "Drawer Overview"
    SPECIMEN_IDENTIFICATION = "Specimen Identification"
    SPECIMEN_DOCUMENTATION = "Specimen Documentation"
    FIELD_BOOK_CAPTURE = "Field Book Pages"
    VOICE_ANNOTATION = "Voice Notes"
    QUALITY_REVIEW = "Quality Review"
    COMPLETION = "Complete"

    @property
    def index(self) -> int:
        return WORKFLOW_ORDER.index(self)


WORKFLOW_ORDER: List[WorkflowState] = list(WorkflowState)


class WorkflowController:
    """
    Tracks the current step for one collection and the active specimen.

    The controller mutates the collection it is bound to (adding specimens)
    but does not persist anything; callers save through the registry.
    """

    def __init__(
        self,
        collection: Optional[Collection] = None,
        event_store: Optional[EventStore] = None,
    ):
        self.collection = collection if collection is not None else Collection()
        self.current_state = WorkflowState.SETUP
        self.current_specimen: Optional[SpecimenRecord] = None
        self.specimen_index = 0
        self._event_store = event_store

    # -- transitions ----------------------------------------------------

    def advance(self) -> bool:
        """Move to the next step. Returns False (no change) at Completion."""
        position = self.current_state.index
        if position >= len(WORKFLOW_ORDER) - 1:
            return False
        self._move_to(WORKFLOW_ORDER[position + 1], trigger="advance")
        return True

    def retreat(self) -> bool:
        """Move to the previous step. Returns False (no change) at Setup."""
        position = self.current_state.index
        if position == 0:
            return False
        self._move_to(WORKFLOW_ORDER[position - 1], trigger="retreat")
        return True

    def jump_to(self, state: WorkflowState) -> None:
        """Go straight to ``state``; no validation is applied."""
        self._move_to(state, trigger="jump")

    def _move_to(self, state: WorkflowState, trigger: str) -> None:
        old_state = self.current_state
        self.current_state = state
        if old_state is state:
            return
        logger.debug(f"Workflow {old_state.name} -> {state.name} ({trigger})")
        publish(
            self._event_store,
            WorkflowStepChanged(
                collection_id=self.collection.id,
                old_step=old_state.name,
                new_step=state.name,
                trigger=trigger,
            ),
        )

    @property
    def can_advance(self) -> bool:
        """Whether a "Next" control should be enabled."""
        return self.current_state is not WorkflowState.COMPLETION and self.validate_current_step()

    @property
    def can_retreat(self) -> bool:
        return self.current_state is not WorkflowState.SETUP

    def is_state_completed(self, state: WorkflowState) -> bool:
        """Steps before the current one count as done."""
        return state.index < self.current_state.index

    # -- validation -----------------------------------------------------

    def validate_current_step(self) -> bool:
        """Gate for the current step. Pure; never changes state."""
        state = self.current_state
        collection = self.collection

        if state is WorkflowState.SETUP:
            result = collection.has_required_info
        elif state is WorkflowState.DRAWER_OVERVIEW:
            result = collection.drawer_overview_image is not None
        elif state is WorkflowState.SPECIMEN_DOCUMENTATION:
            # No active specimen means there is nothing documented yet
            specimen = self.current_specimen
            result = (
                specimen is not None
                and specimen.has_specimen_images
                and bool(specimen.specimen_id.strip())
            )
        elif state is WorkflowState.QUALITY_REVIEW:
            result = all(s.quality_score > MIN_REVIEW_QUALITY for s in collection.specimens)
        else:
            result = True

        logger.debug(f"Validation for {state.name}: {result}")
        return result

    # -- specimens ------------------------------------------------------

    def start_new_specimen(self) -> SpecimenRecord:
        """Append a specimen, make it active and go to documentation."""
        specimen = self.collection.add_specimen()
        self.current_specimen = specimen
        self.specimen_index = len(self.collection.specimens) - 1
        publish(
            self._event_store,
            SpecimenAdded(
                collection_id=self.collection.id,
                specimen_uuid=specimen.id,
                position=self.specimen_index,
            ),
        )
        self._move_to(WorkflowState.SPECIMEN_DOCUMENTATION, trigger="jump")
        return specimen

    def select_specimen(self, index: int) -> bool:
        """Make the specimen at ``index`` active; stale indices are ignored."""
        specimen = self.collection.specimen_at(index)
        if specimen is None:
            return False
        self.current_specimen = specimen
        self.specimen_index = index
        return True

    # -- collection binding ---------------------------------------------

    @staticmethod
    def resume_state_for(collection: Collection) -> WorkflowState:
        """Step to resume at when a stored collection is reopened."""
        if collection.is_complete:
            return WorkflowState.COMPLETION
        if collection.locality and collection.collector_name:
            return WorkflowState.DRAWER_OVERVIEW
        return WorkflowState.SETUP

    def open_collection(self, collection: Collection) -> None:
        """Bind ``collection`` and move to the step where work resumes."""
        self.collection = collection
        self.current_specimen = collection.specimen_at(0)
        self.specimen_index = 0
        self._move_to(self.resume_state_for(collection), trigger="jump")

    def complete_collection(self, registry) -> bool:
        """Finish the workflow and mark the bound collection complete."""
        self.jump_to(WorkflowState.COMPLETION)
        return registry.mark_complete(self.collection)
