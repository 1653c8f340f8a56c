"""
Prompt construction for the hosted model and the user-facing fallbacks returned
when a provider cannot answer.
"""
from __future__ import annotations

from enum import Enum
from typing import Any

from schemas.country import CountryConfig

PLATFORM_NAME = "Sg16 Finance"


class TemplateKind(str, Enum):
    LOAN_AGREEMENT = "loan_agreement"
    CHAT_REPLY = "chat_reply"


TEXT_FALLBACKS: dict[TemplateKind, str] = {
    TemplateKind.LOAN_AGREEMENT: "System Error: Unable to generate legal contract at this time.",
    TemplateKind.CHAT_REPLY: "System offline. Please try again later.",
}

FACE_MATCH_FAILURE_REASON = "Biometric analysis failed due to image quality or network error."
DOCUMENT_FAILURE_NARRATIVE = "AI failed to process document."


def face_match_prompt(country: CountryConfig, device_context: str) -> str:
    return f"""
ACT AS A BIOMETRIC SECURITY AI for '{PLATFORM_NAME}' ({country.code} Region).

Task: Perform strict facial comparison between the provided ID Card and the Live Selfie.

Context:
- Image 1: Official Govt ID ({country.id_document}).
- Image 2: Live Camera Capture (Biometric Selfie).
- Device Fingerprint: {device_context}

Analysis Required:
1. OCR: Extract the full name from the ID.
2. Document Class: Confirm if Image 1 is a valid {country.name} ID card ({country.id_document}).
3. Biometric Match: Compare facial landmarks (eyes, nose, jawline) between ID photo and Selfie.
4. Liveness Check: Analyze the selfie for signs of being a live capture vs a screen photo (moire patterns, glare).

Output JSON strictly:
{{
  "isMatch": boolean (true if >80% confidence),
  "confidence": number (0-100),
  "reason": "Short technical explanation of the match/mismatch.",
  "extractedName": "Name from ID",
  "idType": "Detected ID Type"
}}
""".strip()


def document_analysis_prompt(country: CountryConfig, device_context: str) -> str:
    return f"""
You are a forensic document analyst AI for {PLATFORM_NAME} ({country.code} Region).

Client Device Context: {device_context}
Country Context: {country.name} (currency {country.currency})

Task:
Analyze the provided image of a financial document (Payslip, Bank Statement, or Utility Bill).
1. Identify the document type.
2. Extract the monthly income figure (if applicable, else 0).
3. Identify the employer or issuing bank name.
4. Detect signs of digital tampering (font inconsistencies, pixelation).
5. Calculate a Fraud Risk Score (0-100, where 100 is high risk).
6. Provide a short analysis of the device context vs the document.

Output JSON strictly:
{{
  "isAuthentic": boolean,
  "documentType": "string",
  "extractedIncome": number,
  "employerName": "string",
  "fraudRiskScore": number (0-100),
  "riskNarrative": "string"
}}
""".strip()


def loan_agreement_prompt(params: dict[str, Any]) -> str:
    symbol = params.get("currency_symbol", "")
    return f"""
Generate a formal Financial Facilitation & Agreement Contract for '{PLATFORM_NAME}'.

Parties:
1. {PLATFORM_NAME} (The AI Platform/Intermediary)
2. {params.get("name")} (Applicant, ID: {params.get("national_id")})

Details:
- Requested Principal: {symbol} {float(params.get("amount", 0)):,.2f}
- Tenure: {params.get("months")} Months
- Estimated Repayment: {symbol} {float(params.get("monthly_payment", 0)):.2f} per month
- Jurisdiction: {params.get("country")}
- Governing Law: {params.get("governing_law") or "International Finance Law"}

Key Clauses to Include:
- {PLATFORM_NAME} utilizes Artificial Intelligence to match Applicants with Licensed Lenders.
- The Applicant is NOT charged any brokerage fees by {PLATFORM_NAME}.
- {PLATFORM_NAME} receives commission strictly from the matched Institution.
- Data Privacy consent for AI biometric processing.

Tone: Premium, Corporate, Legal.
Format: Plain text with clear section headers.
Output ONLY the full agreement text.
""".strip()


def chat_system_instruction(country: str) -> str:
    return f"""
You are 'SAIF-AI' (Sg16 Automated Intelligent Finance), a banking assistant for {PLATFORM_NAME}.
Current User Region: {country}.

Capabilities:
- Help users match with loans across South Asia and Southeast Asia.
- Explain that {PLATFORM_NAME} uses AI to match borrowers with licensed banks, charging 0 fees to the borrower.

Tone:
- Sophisticated, Professional, yet Helpful.
- Use concise, precise language suitable for a fintech environment.
- Do not give specific investment advice, but explain platform features.
""".strip()
