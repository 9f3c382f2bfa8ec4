"""
Language-model subsystem.

Components:
- prompts.py: prompt templates for translation and subtask generation
- parser.py: subtask list extraction from free-form model output
- gateway.py: direct (OpenAI SDK) and proxied (HTTP intermediary) gateways
- offline.py: deterministic demo gateway used when no API key is set
"""
