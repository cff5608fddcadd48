"""
Service configuration for the Risk Alert Bot.
Set in .env.local or environment variables.

Bot Framework:
- BOT_ID / BOT_PASSWORD: Microsoft App credentials for the bot registration
- BOT_TENANT_ID: Optional tenant for single-tenant app registrations

Azure OpenAI:
- AZURE_OPENAI_ENDPOINT / AZURE_OPENAI_KEY: Planner endpoint and key
  (SECRET_OPENAI_API_KEY is accepted for the key as well)
- AZURE_OPENAI_DEPLOYMENT: Chat model deployment name
- AZURE_OPENAI_API_VERSION: API version passed to the client

Alerts & Messaging:
- ALERTS_FILE: Path of the JSON alert source (default: data/alerts.json)
- HISTORY_MAX_CHARS: Character budget for the /history command
- PROACTIVE_MAX_ATTEMPTS: Send attempts per conversation during fan-out
"""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv('.env.local')

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Bot Framework credentials
BOT_ID = os.getenv('BOT_ID', '')
BOT_PASSWORD = os.getenv('BOT_PASSWORD', '')
BOT_TENANT_ID = os.getenv('BOT_TENANT_ID')

# Azure OpenAI planner
AZURE_OPENAI_ENDPOINT = os.getenv('AZURE_OPENAI_ENDPOINT')
AZURE_OPENAI_KEY = os.getenv('AZURE_OPENAI_KEY') or os.getenv('SECRET_OPENAI_API_KEY')
AZURE_OPENAI_API_VERSION = os.getenv('AZURE_OPENAI_API_VERSION', '2024-08-01-preview')
AZURE_OPENAI_DEPLOYMENT = os.getenv('AZURE_OPENAI_DEPLOYMENT', 'gpt-35-turbo-16k')

# Alert source
ALERTS_FILE = Path(os.getenv('ALERTS_FILE', str(PROJECT_ROOT / 'data' / 'alerts.json')))

# Conversation & messaging limits
HISTORY_MAX_CHARS = int(os.getenv('HISTORY_MAX_CHARS', '2000'))
PROACTIVE_MAX_ATTEMPTS = int(os.getenv('PROACTIVE_MAX_ATTEMPTS', '3'))

# Server
PORT = int(os.getenv('PORT', '3978'))
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
