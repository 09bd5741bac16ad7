"""
Record shapes for every persisted collection plus the in-memory session types.
Records are validated at the store boundary; persisted JSON keeps the camelCase field names.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class CorpusSource(str, Enum):
    CONSTITUTION = "Constitution"
    STATUTE = "Statute"
    RULE = "Rule"
    TREATY = "Treaty"


class Jurisdiction(str, Enum):
    FEDERAL = "Federal"
    STATE = "State"
    INTERNATIONAL = "International"


class NotificationType(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class Tab(str, Enum):
    """Closed set of view identifiers the presentation layer can show."""
    DASHBOARD = "dashboard"
    DOCUMENT_VAULT = "document-vault"
    SEMANTIC_SCANNER = "semantic-scanner"
    INSTRUMENT_PARSER = "instrument-parser"
    STATUS_CORRECTION = "status-correction"
    A4V_TENDER = "a4v-tender"
    UCC_FILING = "ucc-filing"
    CREDITOR_BOOK = "creditor-book"
    LEGAL_RESOURCES = "legal-resources"
    FCRA_DISPUTE = "fcra-dispute"
    TEMPLATES = "templates"
    IDENTITY_PROFILE = "identity-profile"
    ENDORSEMENT_ALLONGE = "endorsement-allonge"
    TELE_COUNSEL = "tele-counsel"
    TRUST_BUILDER = "trust-builder"
    NAME_GUARD = "name-guard"
    FILING_NAVIGATOR = "filing-navigator"
    COURTROOM_CONVEYANCE = "courtroom-conveyance"
    REMEDY_TRACKER = "remedy-tracker"


# ---------------------------------------------------------------------------
# Base records
# ---------------------------------------------------------------------------

class Record(BaseModel):
    """Base for persisted records: accepts snake_case or camelCase input."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_storage(self) -> Dict[str, Any]:
        """JSON-ready dict using the persisted (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True)


class IdentifiedRecord(Record):
    """Flat record keyed by a client-generated string id."""
    id: str

    @field_validator('id')
    @classmethod
    def id_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('id cannot be empty')
        return v


# ---------------------------------------------------------------------------
# Corpus
# ---------------------------------------------------------------------------

class CorpusItem(Record):
    """One legal-reference record, unique by citation."""
    id: Optional[int] = None
    source: CorpusSource
    jurisdiction: Jurisdiction
    citation: str
    section_id: Optional[str] = Field(default=None, alias="sectionId")
    title: str
    text: str
    strategic_notes: Optional[str] = Field(default=None, alias="strategicNotes")
    effective_date: Optional[str] = Field(default=None, alias="effectiveDate")

    @field_validator('citation')
    @classmethod
    def citation_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('citation cannot be empty')
        return v.strip()


# ---------------------------------------------------------------------------
# Profiles and single-slot records
# ---------------------------------------------------------------------------

class UserProfile(Record):
    uid: str
    display_name: str = Field(alias="displayName")
    email: str
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    provider: Literal['google', 'github']

    @field_validator('uid')
    @classmethod
    def uid_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('uid cannot be empty')
        return v


class IdentityProfile(Record):
    legal_name: str = Field(alias="legalName")
    living_name: str = Field(default="", alias="livingName")
    date_of_birth: str = Field(default="", alias="dateOfBirth")
    mailing_address: str = Field(default="", alias="mailingAddress")
    domicile_declaration: str = Field(default="", alias="domicileDeclaration")
    email: str = ""
    phone_number: str = Field(default="", alias="phoneNumber")
    tax_id: str = Field(default="", alias="taxId")


class InstrumentData(Record):
    """Parsed billing instrument handed between two views via the clipboard slot."""
    creditor_name: str
    account_number: str
    amount_due: str
    past_due_amount: Optional[str] = None
    statement_date: str
    due_date: Optional[str] = None
    payment_address: str
    remit_address: Optional[str] = None
    fdcpa_violations: List[str] = Field(default_factory=list)
    is_payment_coupon: Optional[bool] = None
    coupon_amount: Optional[str] = None


# ---------------------------------------------------------------------------
# Keyed collections
# ---------------------------------------------------------------------------

class Creditor(IdentifiedRecord):
    name: str
    address: str = ""
    account_number: str = Field(default="", alias="accountNumber")
    status: Literal['Active', 'Disputed', 'Discharged'] = 'Active'


class VaultDocument(IdentifiedRecord):
    type: str
    name: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    date_uploaded: str = Field(alias="dateUploaded")

    @field_validator('date_uploaded')
    @classmethod
    def date_uploaded_must_be_iso(cls, v):
        parse_timestamp(v, strict=True)
        return v


class RemedyProcess(IdentifiedRecord):
    respondent: str
    subject: str
    start_date: str = Field(alias="startDate")
    status: Literal['Step 1: Inquiry', 'Step 2: Fault', 'Step 3: Default', 'Complete'] = 'Step 1: Inquiry'
    next_action_date: str = Field(default="", alias="nextActionDate")
    certified_mail_numbers: List[str] = Field(default_factory=list, alias="certifiedMailNumbers")


class CommercialInvoice(IdentifiedRecord):
    violator: str
    violation_type: str = Field(alias="violationType")
    date: str
    amount: str
    invoice_number: str = Field(alias="invoiceNumber")
    status: Literal['Sent', 'Past Due', 'Liened'] = 'Sent'


class Template(IdentifiedRecord):
    name: str
    description: str = ""
    system_instruction: str = Field(alias="systemInstruction")
    user_prompt_template: str = Field(alias="userPromptTemplate")
    is_custom: bool = Field(default=True, alias="isCustom")


class ScriptStep(Record):
    label: str
    text: str
    guidance: Optional[str] = None


class ObjectionHandler(Record):
    trigger: str
    response: str


class CallScript(IdentifiedRecord):
    title: str
    description: str = ""
    steps: List[ScriptStep] = Field(default_factory=list)
    objections: List[ObjectionHandler] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    is_custom: bool = Field(default=True, alias="isCustom")


# ---------------------------------------------------------------------------
# In-memory session types
# ---------------------------------------------------------------------------

@dataclass
class AppNotification:
    id: str
    type: NotificationType
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def parse_timestamp(value: str, strict: bool = False) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (a trailing 'Z' is accepted); naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except (AttributeError, TypeError, ValueError):
        if strict:
            raise ValueError(f'not an ISO-8601 timestamp: {value!r}')
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
