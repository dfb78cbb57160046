"""Built-in rule sets for the common regulatory frameworks.

Each rule flags clause language that touches a regulated area and carries
the recommended language used by the rule-based suggestion fallback.
"""

from typing import Dict, List

from ..models.compliance import ComplianceRule
from ..models.enums import ClauseCategory, ComplianceFramework, RiskLevel


def _gdpr_rules() -> List[ComplianceRule]:
    return [
        ComplianceRule(
            id="gdpr-breach-notification",
            framework=ComplianceFramework.GDPR,
            category=ClauseCategory.BREACH_NOTIFICATION,
            risk_level=RiskLevel.HIGH,
            weight=0.8,
            name="Breach Notification",
            description="Personal data breaches must be notified within 72 hours",
            keywords=("data breach", "security incident", "unauthorized access"),
            patterns=(r"notif\w*\s+(?:of\s+)?(?:any\s+)?breach",),
            suggested_action="State a 72-hour breach notification obligation",
            recommended_language=(
                "The Processor shall notify the Controller without undue delay, and in any "
                "event within 72 hours, after becoming aware of a personal data breach."
            ),
        ),
        ComplianceRule(
            id="gdpr-cross-border",
            framework=ComplianceFramework.GDPR,
            category=ClauseCategory.CROSS_BORDER_TRANSFER,
            risk_level=RiskLevel.HIGH,
            weight=0.9,
            name="Cross-Border Data Transfers",
            description="Transfers outside the EEA require adequate safeguards",
            keywords=("international transfer", "third country", "outside the eea"),
            patterns=(r"transfer\w*\s+(?:\w+\s+){0,3}outside\s+(?:of\s+)?the\s+(?:eu|eea|european)",),
            suggested_action="Require standard contractual clauses or an adequacy decision for transfers",
            recommended_language=(
                "Personal data shall not be transferred outside the European Economic Area "
                "unless appropriate safeguards, such as Standard Contractual Clauses, are in place."
            ),
        ),
        ComplianceRule(
            id="gdpr-data-retention",
            framework=ComplianceFramework.GDPR,
            category=ClauseCategory.DATA_RETENTION,
            risk_level=RiskLevel.HIGH,
            weight=0.8,
            name="Data Retention",
            description="Personal data must not be kept longer than necessary",
            keywords=("retain indefinitely", "retained indefinitely", "perpetual retention"),
            patterns=(r"retain\w*\s+(?:\w+\s+){0,4}(?:indefinitely|in perpetuity|permanently)",),
            suggested_action="Define retention periods and deletion obligations",
            recommended_language=(
                "Personal data shall be retained only for as long as necessary for the "
                "purposes for which it was collected and shall be securely deleted thereafter."
            ),
        ),
        ComplianceRule(
            id="gdpr-data-subject-rights",
            framework=ComplianceFramework.GDPR,
            category=ClauseCategory.DATA_PROTECTION,
            risk_level=RiskLevel.HIGH,
            weight=0.9,
            name="Data Subject Rights",
            description="Processing of personal data must preserve data subject rights",
            keywords=("personal data", "data subject", "personal information"),
            suggested_action="Add data subject rights provisions",
            recommended_language=(
                "Data subjects have the right to access, rectify, erase, and port their "
                "personal data."
            ),
        ),
        ComplianceRule(
            id="gdpr-lawful-basis",
            framework=ComplianceFramework.GDPR,
            category=ClauseCategory.CONSENT_MANAGEMENT,
            risk_level=RiskLevel.CRITICAL,
            weight=1.0,
            name="Lawful Basis for Processing",
            description="Processing without consent or another lawful basis is prohibited",
            keywords=("without consent", "without the consent", "implied consent"),
            suggested_action="Specify the lawful basis for processing personal data",
            recommended_language=(
                "Personal data shall be processed only on a lawful basis under Article 6 "
                "GDPR, including the freely given consent of the data subject where required."
            ),
        ),
    ]


def _hipaa_rules() -> List[ComplianceRule]:
    return [
        ComplianceRule(
            id="hipaa-baa-requirement",
            framework=ComplianceFramework.HIPAA,
            category=ClauseCategory.THIRD_PARTY_SHARING,
            risk_level=RiskLevel.CRITICAL,
            weight=1.0,
            name="Business Associate Agreement",
            description="Disclosure of PHI to vendors requires a business associate agreement",
            keywords=("business associate", "subcontractor", "disclose to third parties"),
            suggested_action="Require a Business Associate Agreement before any PHI disclosure",
            recommended_language=(
                "Prior to any disclosure of Protected Health Information, the parties shall "
                "execute a Business Associate Agreement meeting the requirements of 45 CFR 164.504(e)."
            ),
        ),
        ComplianceRule(
            id="hipaa-minimum-necessary",
            framework=ComplianceFramework.HIPAA,
            category=ClauseCategory.HEALTHCARE_PRIVACY,
            risk_level=RiskLevel.HIGH,
            weight=0.8,
            name="Minimum Necessary Standard",
            description="Use of PHI must be limited to the minimum necessary",
            keywords=("all patient records", "unrestricted access", "full medical history"),
            suggested_action="Limit PHI use and disclosure to the minimum necessary",
            recommended_language=(
                "Use and disclosure of Protected Health Information shall be limited to the "
                "minimum necessary to accomplish the intended purpose."
            ),
        ),
        ComplianceRule(
            id="hipaa-phi-protection",
            framework=ComplianceFramework.HIPAA,
            category=ClauseCategory.HEALTHCARE_PRIVACY,
            risk_level=RiskLevel.CRITICAL,
            weight=1.0,
            name="PHI Protection",
            description="Protected health information requires administrative and technical safeguards",
            keywords=("protected health information", "medical records", "health information"),
            patterns=(r"\bphi\b",),
            suggested_action="Add PHI safeguards consistent with the HIPAA Security Rule",
            recommended_language=(
                "Protected Health Information shall be handled in accordance with HIPAA "
                "requirements."
            ),
        ),
    ]


def _sox_rules() -> List[ComplianceRule]:
    return [
        ComplianceRule(
            id="sox-audit-requirements",
            framework=ComplianceFramework.SOX,
            category=ClauseCategory.AUDIT_COMPLIANCE,
            risk_level=RiskLevel.HIGH,
            weight=0.9,
            name="Audit Rights",
            description="Restrictions on audit access undermine internal control testing",
            keywords=("no audit rights", "waives audit", "restrict audit"),
            patterns=(r"(?:shall|will)\s+not\s+be\s+(?:subject\s+to|required\s+to\s+submit\s+to)\s+(?:an\s+)?audit",),
            suggested_action="Preserve auditor access to records supporting financial reporting",
            recommended_language=(
                "The Company shall provide its independent auditors with access to all "
                "records necessary to assess internal control over financial reporting."
            ),
        ),
        ComplianceRule(
            id="sox-documentation",
            framework=ComplianceFramework.SOX,
            category=ClauseCategory.DATA_RETENTION,
            risk_level=RiskLevel.HIGH,
            weight=0.8,
            name="Record Retention",
            description="Audit work papers and financial records must be retained for seven years",
            keywords=("destroy records", "destruction of records", "discard documentation"),
            suggested_action="Retain financial records for at least seven years",
            recommended_language=(
                "Financial records and audit documentation shall be retained for a minimum "
                "of seven years."
            ),
        ),
        ComplianceRule(
            id="sox-financial-reporting",
            framework=ComplianceFramework.SOX,
            category=ClauseCategory.FINANCIAL_REPORTING,
            risk_level=RiskLevel.CRITICAL,
            weight=1.0,
            name="Financial Reporting Controls",
            description="Off-balance-sheet arrangements and unreported liabilities must be disclosed",
            keywords=("off-balance sheet", "off balance sheet", "side letter"),
            suggested_action="Require disclosure of all material financial arrangements",
            recommended_language=(
                "All material financial arrangements, including off-balance-sheet "
                "obligations, shall be disclosed in the Company's periodic financial reports."
            ),
        ),
    ]


def _ccpa_rules() -> List[ComplianceRule]:
    return [
        ComplianceRule(
            id="ccpa-consumer-rights",
            framework=ComplianceFramework.CCPA,
            category=ClauseCategory.CONSUMER_RIGHTS,
            risk_level=RiskLevel.HIGH,
            weight=0.9,
            name="Consumer Privacy Rights",
            description="Consumers may know, delete and opt out of the sale of their information",
            keywords=("consumer data", "personal information", "california residents"),
            suggested_action="Provide CCPA consumer rights to know, delete and opt out",
            recommended_language=(
                "Consumers have the right to know, delete, and opt out of the sale of their "
                "personal information."
            ),
        ),
        ComplianceRule(
            id="ccpa-sale-of-data",
            framework=ComplianceFramework.CCPA,
            category=ClauseCategory.THIRD_PARTY_SHARING,
            risk_level=RiskLevel.CRITICAL,
            weight=1.0,
            name="Sale of Personal Information",
            description="Selling personal information requires notice and an opt-out",
            keywords=("sell personal information", "sale of personal information", "monetize data"),
            suggested_action="Add notice and a 'Do Not Sell' opt-out before any sale of data",
            recommended_language=(
                "Personal information shall not be sold unless consumers have received notice "
                "and a clear opportunity to opt out of the sale."
            ),
        ),
    ]


def _iso27001_rules() -> List[ComplianceRule]:
    return [
        ComplianceRule(
            id="iso27001-access-control",
            framework=ComplianceFramework.ISO27001,
            category=ClauseCategory.SECURITY_REQUIREMENTS,
            risk_level=RiskLevel.MEDIUM,
            weight=0.6,
            name="Access Control",
            description="Access to information must follow documented access control policy",
            keywords=("shared credentials", "shared password", "unrestricted access"),
            suggested_action="Require role-based access control and unique credentials",
            recommended_language=(
                "Access to information systems shall be granted on a least-privilege basis "
                "using unique, individually assigned credentials."
            ),
        ),
        ComplianceRule(
            id="iso27001-incident-management",
            framework=ComplianceFramework.ISO27001,
            category=ClauseCategory.BREACH_NOTIFICATION,
            risk_level=RiskLevel.MEDIUM,
            weight=0.5,
            name="Incident Management",
            description="Information security incidents must be reported and handled",
            keywords=("security incident", "information security event"),
            suggested_action="Define an incident reporting and response procedure",
            recommended_language=(
                "Information security incidents shall be reported through defined channels "
                "and handled under a documented incident response procedure."
            ),
        ),
    ]


def _soc2_rules() -> List[ComplianceRule]:
    return [
        ComplianceRule(
            id="soc2-availability",
            framework=ComplianceFramework.SOC2,
            category=ClauseCategory.SECURITY_REQUIREMENTS,
            risk_level=RiskLevel.MEDIUM,
            weight=0.5,
            name="Availability Commitments",
            description="Service availability commitments must be measurable",
            keywords=("best efforts uptime", "no uptime guarantee", "as available basis"),
            suggested_action="State measurable availability commitments",
            recommended_language=(
                "The Service shall be available at least 99.9% of each calendar month, "
                "excluding scheduled maintenance notified in advance."
            ),
        ),
        ComplianceRule(
            id="soc2-vendor-management",
            framework=ComplianceFramework.SOC2,
            category=ClauseCategory.THIRD_PARTY_SHARING,
            risk_level=RiskLevel.MEDIUM,
            weight=0.6,
            name="Vendor Management",
            description="Subservice organisations must be subject to equivalent controls",
            keywords=("subprocessor", "sub-processor", "subservice organization"),
            suggested_action="Flow down security obligations to subservice organisations",
            recommended_language=(
                "Any subservice organization engaged by the Provider shall be bound by "
                "security obligations no less protective than those in this Agreement."
            ),
        ),
    ]


def _pci_dss_rules() -> List[ComplianceRule]:
    return [
        ComplianceRule(
            id="pci-dss-cardholder-data",
            framework=ComplianceFramework.PCI_DSS,
            category=ClauseCategory.SECURITY_REQUIREMENTS,
            risk_level=RiskLevel.CRITICAL,
            weight=1.0,
            name="Cardholder Data Protection",
            description="Stored cardholder data must be protected",
            keywords=("cardholder data", "card number", "credit card data"),
            patterns=(r"\bpan\b",),
            suggested_action="Require PCI DSS compliant protection of cardholder data",
            recommended_language=(
                "Cardholder data shall be stored, processed and transmitted only in "
                "compliance with the current PCI DSS requirements."
            ),
        ),
        ComplianceRule(
            id="pci-dss-sensitive-auth",
            framework=ComplianceFramework.PCI_DSS,
            category=ClauseCategory.DATA_RETENTION,
            risk_level=RiskLevel.CRITICAL,
            weight=1.0,
            name="Sensitive Authentication Data",
            description="Sensitive authentication data must not be stored after authorization",
            keywords=("cvv", "cvc", "full track data"),
            patterns=(r"store\w*\s+(?:\w+\s+){0,3}(?:cvv|cvc|pin)",),
            suggested_action="Prohibit storage of sensitive authentication data",
            recommended_language=(
                "Sensitive authentication data shall not be stored after authorization, "
                "even if encrypted."
            ),
        ),
    ]


_FRAMEWORK_BUILDERS = {
    ComplianceFramework.GDPR: _gdpr_rules,
    ComplianceFramework.HIPAA: _hipaa_rules,
    ComplianceFramework.SOX: _sox_rules,
    ComplianceFramework.CCPA: _ccpa_rules,
    ComplianceFramework.ISO27001: _iso27001_rules,
    ComplianceFramework.SOC2: _soc2_rules,
    ComplianceFramework.PCI_DSS: _pci_dss_rules,
}


def rules_for_framework(framework: ComplianceFramework) -> List[ComplianceRule]:
    """Built-in rules for one framework (empty when none are bundled)."""
    builder = _FRAMEWORK_BUILDERS.get(framework)
    return builder() if builder else []


def default_rules() -> List[ComplianceRule]:
    """All built-in rules, ordered by ID."""
    rules = [rule for builder in _FRAMEWORK_BUILDERS.values() for rule in builder()]
    return sorted(rules, key=lambda r: r.id)


def default_rules_by_framework() -> Dict[ComplianceFramework, List[ComplianceRule]]:
    return {framework: builder() for framework, builder in _FRAMEWORK_BUILDERS.items()}
