"""
Markdown templates for new specs and delta specs.

Template guidance lives in HTML comments, which the spec document lexer
and the delta parser both skip. Requirement tables start with placeholder
rows that have an ID but no text; extract_requirements() ignores those.
"""

from datetime import date


def _today() -> str:
    return date.today().isoformat()


def _header(spec_id: str, name: str, author: str, priority: str, title_suffix: str = "") -> str:
    return f"""# {name} Specification{title_suffix}

**ID:** {spec_id}
**Status:** SPEC
**Created:** {_today()}
**Author:** {author}
**Priority:** {priority}
"""


def standard_template(spec_id: str, name: str, author: str, priority: str = "P1", description: str = "") -> str:
    """PRD-style spec with functional and non-functional requirement tables."""
    problem = description or "<!-- Describe the problem this feature solves -->"
    return _header(spec_id, name, author, priority) + f"""
---

## Problem Statement
{problem}

## User Stories
As a [type of user]
I want [some goal]
So that [some reason]

## Scope

### In Scope
-

### Out of Scope
-

## Requirements

### Functional Requirements
| ID | Requirement | Priority | Acceptance Criteria |
|----|-------------|----------|---------------------|
| FR-1 | | P0 | |

### Non-Functional Requirements
| ID | Requirement | Metric |
|----|-------------|--------|
| NFR-1 | | |

## Scenarios (Given/When/Then)

### Scenario 1: [Name]
- **Given** [initial context]
- **When** [action/event occurs]
- **Then** [expected outcome]

## Technical Approach
<!-- Architecture, dependencies, integrations -->

## Test Strategy
- Unit tests:
- Integration tests:

## Notes
<!-- Open questions, risks, decisions -->
"""


def ears_template(spec_id: str, name: str, author: str, priority: str = "P1", description: str = "") -> str:
    """Spec template whose requirements are written as EARS sentences."""
    problem = description or "<!-- Describe the problem this feature solves -->"
    return _header(spec_id, name, author, priority, " (EARS Format)") + f"""
---

## EARS Guide

Write each requirement in one of these shapes:

| Pattern | Shape |
|---------|-------|
| Ubiquitous | The system shall [action] |
| Event-driven | When [event], the system shall [action] |
| State-driven | While [state], the system shall [action] |
| Optional | Where [condition], the system shall [action] |
| Unwanted | If [unwanted condition], then the system shall [action] |
| Complex | When [event], while [state], the system shall [action] |

Avoid ambiguous words (should, may, might, could) and vague terms
(appropriate, adequate, reasonable, efficient, user-friendly, as needed).

---

## Problem Statement
{problem}

## Requirements (EARS Format)

### Functional Requirements

| ID | EARS Pattern | Requirement | Priority |
|----|--------------|-------------|----------|
| FR-1 | Ubiquitous | | P0 |
| FR-2 | Event | | P0 |
| FR-3 | State | | P1 |
| FR-4 | Optional | | P1 |
| FR-5 | Unwanted | | P2 |

<!--
Examples:
The system shall store all user data in encrypted format
When user completes checkout, the system shall generate an order confirmation
While user is in offline mode, the system shall cache all changes locally
Where user enables notifications, the system shall send real-time alerts
If API request fails, then the system shall retry with exponential backoff
-->

### Non-Functional Requirements

| ID | EARS Pattern | Requirement | Metric |
|----|--------------|-------------|--------|
| NFR-1 | Ubiquitous | | |

## Scenarios (Given/When/Then)

### Scenario 1: [EARS Pattern Type]
**Requirement:** [Copy EARS requirement here]

- **Given** [initial state/context]
- **When** [action/event occurs]
- **Then** [expected outcome matching the EARS action]

## Technical Approach
<!-- Architecture, dependencies, integrations -->
"""


def delta_template(delta_id: str, base_spec_id: str, author: str) -> str:
    """Delta spec skeleton for brownfield changes to base_spec_id."""
    return f"""# Delta Spec: {delta_id}

**Base Spec:** {base_spec_id}
**Author:** {author}
**Created:** {_today()}
**Description:** Describe the change

---

## ADDED Requirements

<!--
New requirements, one block each:

### FR-10
The system shall send a confirmation email after signup
**Priority:** P1
- Given a new account, when signup completes, then an email is sent
-->

## MODIFIED Requirements

<!--
Changed requirements, with the previous text for reviewers:

**FR-2:** Sessions expire after 30 minutes ← (was Sessions expire after 1 hour)
-->

## REMOVED Requirements

<!--
IDs to drop, one per line:

- FR-4
-->
"""
