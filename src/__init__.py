"""
AI Bookkeeping - Source Package

A conversational bookkeeping assistant: free text goes to an AI model,
slash commands query the ledger directly, and every change the AI
suggests waits for the user's approval.

DESIGN PRINCIPLES:
1. AI suggests → Human confirms → System records
2. Fail soft, stay in the conversation
3. No silent ledger changes
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "AI Bookkeeping Team"
