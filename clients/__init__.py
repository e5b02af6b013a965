# Infrastructure clients for session storage
from clients.valkey_client import ValkeyClient
