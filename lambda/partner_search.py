import json
import logging

from partnermatch.config import Settings
from partnermatch.connection_repo import ConnectionRepo
from partnermatch.errors import CandidatePoolFetchError, InvalidCriteria, ProfileNotFound
from partnermatch.models import CONNECTION_ACCEPTED, SearchCriteria
from partnermatch.profile_repo import PoolFilter, ProfileRepo
from partnermatch.ranking import list_partners, search, validate_criteria

logger = logging.getLogger()
logger.setLevel(logging.INFO)

SETTINGS = Settings.from_env()

# Created on first use so cold starts that only serve OPTIONS stay cheap
_profile_repo = None
_connection_repo = None


def _repos():
    global _profile_repo, _connection_repo
    if _profile_repo is None:
        _profile_repo = ProfileRepo(
            SETTINGS.profiles_table,
            capabilities=SETTINGS.capabilities,
            institution_index=SETTINGS.institution_index,
            region=SETTINGS.region,
        )
    if _connection_repo is None:
        _connection_repo = ConnectionRepo(
            SETTINGS.connections_table,
            requester_index=SETTINGS.requester_index,
            recipient_index=SETTINGS.recipient_index,
            region=SETTINGS.region,
        )
    return _profile_repo, _connection_repo


# --------------------------
# HTTP helpers
# --------------------------

def _cors_headers():
    return {
        "Access-Control-Allow-Origin": SETTINGS.allow_origin,
        "Access-Control-Allow-Headers": "Content-Type,Authorization",
        "Access-Control-Allow-Methods": "OPTIONS,GET",
        "Content-Type": "application/json",
    }


def _resp(status: int, body):
    return {
        "statusCode": status,
        "headers": _cors_headers(),
        "body": json.dumps(body),
    }


def _method(event) -> str:
    return (
        event.get("requestContext", {}).get("http", {}).get("method")
        or event.get("httpMethod")
        or ""
    ).upper()


def _path(event) -> str:
    return event.get("rawPath") or event.get("path") or ""


def _current_user_id(event) -> str:
    """Authorizer claim ``sub`` first, then the ``x-user-id`` header."""
    ctx = event.get("requestContext") or {}
    authorizer = ctx.get("authorizer") or {}
    claims = (authorizer.get("jwt") or {}).get("claims") or authorizer.get("claims") or {}
    if claims.get("sub"):
        return str(claims["sub"])
    for k, v in (event.get("headers") or {}).items():
        if k.lower() == "x-user-id" and v:
            return str(v).strip()
    return ""


def parse_criteria(params, default_limit: int = 100) -> SearchCriteria:
    params = params or {}
    raw_limit = params.get("limit")
    limit = default_limit
    if raw_limit not in (None, ""):
        try:
            limit = int(str(raw_limit).strip())
        except ValueError:
            raise InvalidCriteria(f"limit must be an integer, got {raw_limit!r}", field="limit")
    return SearchCriteria(
        institution=(params.get("institution") or params.get("university") or "").strip() or None,
        search_term=(params.get("search") or "").strip() or None,
        limit=limit,
    )


# --------------------------
# Routes
# --------------------------

def handle_search(user_id: str, params):
    criteria = parse_criteria(params, SETTINGS.default_limit)
    validate_criteria(criteria, max_limit=SETTINGS.max_limit)

    profiles, connections = _repos()
    current = profiles.get_user_profile(user_id)
    pool = profiles.list_candidate_pool(
        PoolFilter(
            institution=criteria.institution,
            search_term=criteria.search_term,
            exclude_user_id=user_id,
        )
    )
    records = connections.list_connections(user_id)
    results = search(current, criteria, pool, records, max_limit=SETTINGS.max_limit)
    return [r.to_dict() for r in results]


def handle_list_partners(user_id: str):
    profiles, connections = _repos()
    current = profiles.get_user_profile(user_id)
    records = connections.list_connections(user_id)
    partner_ids = sorted({r.other_party(user_id) for r in records if r.status == CONNECTION_ACCEPTED})
    partners = profiles.get_profiles(partner_ids)
    return [r.to_dict() for r in list_partners(current, partners, records)]


def lambda_handler(event, context):
    event = event or {}
    if _method(event) == "OPTIONS":
        return _resp(200, {"ok": True})

    user_id = _current_user_id(event)
    if not user_id:
        return _resp(401, {"ok": False, "error": "Authentication required"})

    try:
        if _path(event).rstrip("/").endswith("/search"):
            return _resp(200, handle_search(user_id, event.get("queryStringParameters")))
        return _resp(200, handle_list_partners(user_id))
    except InvalidCriteria as e:
        return _resp(400, {"ok": False, "error": str(e), "field": e.field})
    except ProfileNotFound as e:
        return _resp(404, {"ok": False, "error": str(e)})
    except CandidatePoolFetchError as e:
        logger.warning("Candidate pool unavailable: %s", e)
        return _resp(503, {"ok": False, "error": "Failed to search for partners", "retryable": True})
    except Exception as e:
        logger.exception("partner_search_failed: %s", e)
        return _resp(500, {"ok": False, "error": "Failed to search for partners"})
