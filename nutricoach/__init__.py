"""
NutriCoach conversational meal logging.

Dialogue engine that sits between a user chatting with a nutrition
assistant and the record store holding their meal log.

Structure:
- domain/: Classifiers, data models, extraction and ports
- application/: Per-turn conversation orchestration
- infrastructure/: OpenAI client, record stores, local app state
"""

__version__ = "0.1.0"
