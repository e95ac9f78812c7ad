"""TeacherMada advisor agent: a sales advisor persona ("Tsanta") behind an API.

Architecture Overview
=====================

Every inbound message goes through :class:`~advisor_agent.agent.AgentOrchestrator`,
a small **LangGraph** state machine:

1. **compact**: once a session reaches ``HISTORY_LIMIT`` turns, the oldest
   turns are summarised by the provider into one synthetic exchange; the
   last ``RETAIN_COUNT`` turns stay verbatim.
2. **build_context**: the message (optionally tagged with language / stage)
   is appended to the history.
3. **attempt**: Claude is asked for a JSON reply with the pool's current API
   key; the output is validated against a strict schema (closed ``intent`` and
   ``next_action`` sets).  Any failure rotates to the next key.
4. **commit** / **fallback**: success stores the exchange; once every key has
   failed, a fixed apology reply is returned instead of an error.

Key Design Decisions
--------------------
- **Availability over errors**: callers always get a well-formed reply,
  except for malformed requests (``BadRequest``).
- **Credential failover**: plain round-robin over ``API_KEYS``; no key is ever
  dropped, so a rate-limited key is retried on a later cycle.
- **Bounded memory**: history compaction per session, plus optional LRU
  eviction of whole sessions (``MAX_SESSIONS``).
- **Dual Interface**: FastAPI server (production) + CLI chat loop (development).

Package Structure
-----------------
- ``advisor_agent/agent.py``: orchestrator StateGraph
- ``advisor_agent/credentials.py``: credential pool
- ``advisor_agent/history.py``: turns, history store, compaction policy
- ``advisor_agent/summarizer.py``: summarisation-based compaction
- ``advisor_agent/schemas.py``: structured reply schema and validation
- ``advisor_agent/config.py``: configuration from environment variables
- ``advisor_agent/prompts.py``: persona and output-format prompts
- ``advisor_agent/server.py`` / ``advisor_agent/api/``: FastAPI application
- ``advisor_agent/main.py``: CLI chat interface
- ``advisor_agent/services/``: provider client, metrics, request log
"""
