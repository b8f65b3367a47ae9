# Models module
from sahayak.models.profile import CitizenProfile, EmploymentStatus, HistoryAction, Language
from sahayak.models.opportunity import (
    Job, Scheme, Program, Opportunity, OpportunityCategory, LocalizedText,
    RangeCriterion, MembershipCriterion, EnumCriterion, UnrecognizedCriterion, parse_criteria,
)
from sahayak.models.classification import Classification, ExtractedEntities, IntentCategory
from sahayak.models.conversation import ConversationContext, SessionState, Turn
from sahayak.models.results import EligibilityResult, MatchResult, SearchCriteria
from sahayak.models.payload import OpportunityContent, PayloadKind, ResponsePayload
