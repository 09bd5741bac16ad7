"""
Built-in template library and call scripts. Always listed ahead of custom entries; never deletable.
"""

from .schema import CallScript, ObjectionHandler, ScriptStep, Template

DEFAULT_TEMPLATES = [
    Template(
        id='tpl-treaty-motion',
        name='Treaty Invocation & Supremacy Motion',
        description='Invoke Federal Question jurisdiction via Article VI and the Treaty of Peace and Friendship (1787).',
        system_instruction='You are a Federal Rights Litigator. Draft a formal "Motion for Judicial Notice and Dismissal '
                           'for Lack of Jurisdiction". The argument must anchor on the Supremacy Clause (Article VI) and '
                           'the Treaty of Peace and Friendship (1787), asserting that state statutes cannot impair the '
                           'obligation of this contract.',
        user_prompt_template='Draft a motion for the following venue:\nCourt: {{courtName}}\nCase No: {{caseNumber}}\n\n'
                             'Assert that the "Defendant" is a non-citizen national protected by Treaty. '
                             'Demand dismissal of the state action for lack of subject matter jurisdiction.',
        is_custom=False,
    ),
    Template(
        id='tpl-vital-req',
        name='Vital Records Request (Specific)',
        description='Request long-form BC with specific demand for registration numbers/file numbers.',
        system_instruction='You are an administrative law specialist. Draft a precise request for public records.',
        user_prompt_template='Draft a request to {{agencyName}} for the birth record of {{name}} (DOB: {{dob}}). '
                             'Demand inclusion of the registration number, file number, and all registrar annotations. '
                             'Include a clause demanding written policy citations if any data is redacted.',
        is_custom=False,
    ),
    Template(
        id='tpl-admin-denial',
        name='Demand for Authority (Denial Appeal)',
        description='Use when an agency says "that number does not exist" or "privacy prevents release".',
        system_instruction='You are an appellate specialist. Draft a formal demand for statutory authority.',
        user_prompt_template='Draft a response to a denial from {{agencyName}}. They refused to provide {{recordType}}. '
                             'Demand the specific statute, administrative rule, or written policy relied upon for this '
                             'denial. Request the name of the Records Custodian and the formal appeal process.',
        is_custom=False,
    ),
    Template(
        id='tpl-1',
        name='Notice of Conditional Acceptance',
        description='Accept a presentment conditionally upon proof of claim.',
        system_instruction='You are a Sovereign Legal Expert. Draft a formal Notice of Conditional Acceptance. '
                           'Use authoritative, archaic commercial language.',
        user_prompt_template='Draft a conditional acceptance for the following claim: {{claimDetails}}. '
                             'Claimant: {{claimantName}}.',
        is_custom=False,
    ),
    Template(
        id='tpl-2',
        name='Affidavit of Truth',
        description='General affidavit to establish facts on the public record.',
        system_instruction='You are a scribe for a Secured Party Creditor. Draft an Affidavit of Truth formatted with a Jurat.',
        user_prompt_template='Draft an affidavit stating the following facts: {{facts}}.',
        is_custom=False,
    ),
    Template(
        id='tpl-3',
        name='Freedom of Information Act Request',
        description='Request specific agency records.',
        system_instruction='You are a Transparency Advocate. Draft a precise FOIA request.',
        user_prompt_template='Draft a FOIA request to {{agencyName}} regarding {{subject}}.',
        is_custom=False,
    ),
    Template(
        id='tpl-ucc-1',
        name='UCC-1 Financing Statement Guide',
        description='Draft the content for a standard UCC-1 financing statement.',
        system_instruction='You are an expert in Uniform Commercial Code Article 9. Draft the precise text fields '
                           'for a UCC-1 Financing Statement. Ensure the Collateral Description is maximalist and '
                           'sovereign-oriented.',
        user_prompt_template='Draft UCC-1 content.\nSecured Party: {{securedParty}}\nDebtor: {{debtor}}\n'
                             'Collateral: {{collateralDescription}}',
        is_custom=False,
    ),
    Template(
        id='tpl-ucc-3',
        name='UCC-3 Amendment Guide',
        description='Draft amendments, assignments, or terminations for existing filings.',
        system_instruction='You are a UCC Specialist. Draft a UCC-3 Amendment text. Clearly specify whether this is '
                           'a Termination, Assignment, or Amendment of Collateral.',
        user_prompt_template='Draft UCC-3 Amendment.\nOriginal File Number: {{fileNumber}}\n'
                             'Amendment Type: {{type: Termination/Assignment}}\nDetails: {{details}}',
        is_custom=False,
    ),
    Template(
        id='tpl-ucc-5',
        name='UCC-5 Information Statement',
        description='File an objection or correction to a record indexed under your name.',
        system_instruction='You are a Commercial Law expert. Draft a UCC-5 Information Statement to correct or '
                           'object to a potentially fraudulent or inaccurate record.',
        user_prompt_template='Draft UCC-5 Statement.\nRecord Corrected: {{recordReference}}\n'
                             'Reason for Correction/Objection: {{reason}}',
        is_custom=False,
    ),
    Template(
        id='tpl-promissory',
        name='Sovereign Promissory Note',
        description='Draft a negotiable instrument backed by the Private Trust.',
        system_instruction='You are a specialist in UNCITRAL conventions and International Bills of Exchange. '
                           'Draft a legally sound Promissory Note. Ensure it contains the unconditional promise to '
                           'pay, fixed sum, and signature block for the Trustee.',
        user_prompt_template='Draft Promissory Note.\nMaker (Trust): {{trustName}}\nTrustee: {{trusteeName}}\n'
                             'Payee: {{payeeName}}\nAmount: {{amount}}\nMaturity Date: {{date}}\nJurisdiction: {{situs}}',
        is_custom=False,
    ),
]

DEFAULT_SCRIPTS = [
    CallScript(
        id='script-vr-inquiry',
        title='Vital Records - "No Such Number"',
        description='Use when a clerk claims the registration number or CUSIP link does not exist or is private.',
        tags=['Vital Records', 'Gatekeeping', 'Privacy'],
        steps=[
            ScriptStep(
                label='The Request',
                text='I am requesting a certified long-form birth certificate. Please ensure it includes the full '
                     'registration number, local file number, and date registered.',
                guidance='State this clearly. Do not mention trusts or money yet.',
            ),
            ScriptStep(
                label='The Resistance',
                text='If you are saying that number does not exist or is private, please provide the specific '
                     'statutory citation your office uses to exclude that information from a certified copy.',
                guidance='Wait for them to fumble. They usually cite "policy", not law.',
            ),
            ScriptStep(
                label='The Escalation',
                text='I understand you are following procedure. However, I require a written denial citing the '
                     'specific statute for non-disclosure, along with the name of the Records Custodian and the '
                     'appeal process.',
                guidance='Move from asking to building an administrative record.',
            ),
        ],
        objections=[
            ObjectionHandler(trigger="We don't know what you mean",
                             response='I am referring to the file number used to index this document in your state system.'),
            ObjectionHandler(trigger='That is internal only',
                             response='Is there a statute that classifies the index number as confidential? If so, please cite it.'),
        ],
        is_custom=False,
    ),
    CallScript(
        id='script-ucc-reject',
        title='Filing Officer - Rejection',
        description='Use when a filing office rejects a UCC-1 claiming it is "frivolous" or attempts to verify '
                    'the collateral.',
        tags=['UCC', 'Filing Office', 'Rejection'],
        steps=[
            ScriptStep(
                label='Opening',
                text='I am calling regarding Rejection Notice [Number]. The rejection states the filing is [Reason].',
                guidance='Stay calm. You are merely inquiring about the administrative process.',
            ),
            ScriptStep(
                label='Ministerial Duty',
                text="Under UCC Article 9, the filing office's role is ministerial. You are required to file if the "
                     "form is communicated and the fee is tendered. Are you making a legal determination on the "
                     "validity of the collateral?",
                guidance='Filing officers cannot make legal judgments, only format checks.',
            ),
            ScriptStep(
                label='Demand Policy',
                text='If you are refusing to file based on content, please provide the written policy or '
                     'administrative rule that authorizes you to review the substance of the collateral description.',
                guidance='They often cannot produce this. It puts them on notice.',
            ),
        ],
        objections=[
            ObjectionHandler(trigger="We don't accept filings on people",
                             response='This is a filing regarding a commercial entity and its assets, grounded in a '
                                      'security agreement.'),
            ObjectionHandler(trigger='It looks like a sovereign citizen filing',
                             response='I cannot speak to that. I am asking for the specific UCC regulation that was violated.'),
        ],
        is_custom=False,
    ),
    CallScript(
        id='script-1',
        title='Debt Collector Validation',
        description='Initial contact script for third-party debt collectors. Focuses on preventing joinder and '
                    'demanding verification.',
        tags=['Debt', 'FDCPA', 'Collections'],
        steps=[
            ScriptStep(
                label='Identify & Record',
                text='Before we proceed, I am the Authorized Representative for the all-caps name on your file. '
                     'I am recording this call for quality assurance and accurate record keeping. Do you consent to '
                     'being recorded?',
                guidance='If they say no, state: "Then I cannot proceed with this call." and hang up.',
            ),
            ScriptStep(
                label='Establish Authority',
                text='What is your full name, and do you have a license to collect debts in my state?',
                guidance='Write down their name and ID number immediately.',
            ),
            ScriptStep(
                label='Demand Verification',
                text='I dispute this debt in its entirety. I am not refusing to pay, but I require proof of claim. '
                     'Please send a certified copy of the original contract bearing my wet-ink signature.',
                guidance='Do not admit the debt is yours. Use the phrase "alleged debt".',
            ),
            ScriptStep(
                label='Close Call',
                text='Until you provide that verification in writing, you are to cease all telephone communication. '
                     'This is a verbal Cease and Desist under FDCPA Section 805(c). Good day.',
                guidance='Hang up immediately after stating this.',
            ),
        ],
        objections=[
            ObjectionHandler(trigger='We need payment now',
                             response='I cannot tender payment on an unverified debt. That would be irresponsible.'),
            ObjectionHandler(trigger='Are you refusing to pay?',
                             response='I am not refusing. I am conditionally accepting your claim upon proof of verification.'),
            ObjectionHandler(trigger='Verify your SSN',
                             response='I do not give out private information over the unsecured telephone line.'),
        ],
        is_custom=False,
    ),
    CallScript(
        id='script-2',
        title='Credit Card Inquiry',
        description='Speaking to a bank representative regarding ledger accounting or billing errors.',
        tags=['Banking', 'Credit', 'Ledger'],
        steps=[
            ScriptStep(
                label='Opening',
                text='Hello, I am calling regarding account ending in [Last 4]. I am inquiring about the accounting '
                     'ledger associated with this account.',
                guidance='Be polite but firm. You are the beneficiary of the trust account.',
            ),
            ScriptStep(
                label='The Inquiry',
                text='I noticed a charge on [Date] for [Amount]. Can you please verify if this was an extension of '
                     'credit or an exchange of funds?',
                guidance='This confuses standard reps, but establishes you know banking mechanics.',
            ),
            ScriptStep(
                label='Escalation',
                text='I understand you may not have access to that level of detail. Please transfer me to the Fraud '
                     'Department or a Supervisor who can view the transaction ledger.',
                guidance='Standard CSRs strictly follow scripts. Move up the chain.',
            ),
        ],
        objections=[
            ObjectionHandler(trigger='I cannot transfer you',
                             response='Please note on the account that I requested a supervisor and was denied.'),
            ObjectionHandler(trigger='What is the issue?',
                             response='The issue involves the accounting methodology used for this transaction.'),
        ],
        is_custom=False,
    ),
]

DEFAULT_TEMPLATE_IDS = frozenset(t.id for t in DEFAULT_TEMPLATES)
DEFAULT_SCRIPT_IDS = frozenset(s.id for s in DEFAULT_SCRIPTS)
