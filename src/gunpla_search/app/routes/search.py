import logging

from quart import Blueprint, Request, jsonify, request

from gunpla_search.app.services.container import get_search_api
from gunpla_search.app.services.search_pipeline import (
    FilterCriteria,
    FilterDataError,
    KitSearchError,
    SearchFilters,
)
from gunpla_search.app.services.search_pipeline.filters import ALL
from gunpla_search.app.util import coerce_int
from gunpla_search.util import split_csv


logger = logging.getLogger(__name__)

search_bp = Blueprint("search", __name__, url_prefix="/api")

MAX_PAGE_SIZE = 100

# Query argument -> FilterCriteria id list / slug keyword for resolve_criteria_slugs.
FACET_ARGS: tuple[tuple[str, str, str], ...] = (
    ("grade", "grade_ids", "grades"),
    ("product_line", "product_line_ids", "product_lines"),
    ("mobile_suit", "mobile_suit_ids", "mobile_suits"),
    ("series", "series_ids", "series"),
    ("release_type", "release_type_ids", "release_types"),
)


def criteria_from_request(req: Request, default_limit: int) -> FilterCriteria:
    criteria = FilterCriteria(
        search_term=(req.args.get("q") or "").strip(),
        sort_by=(req.args.get("sort") or "relevance").strip(),
        order=(req.args.get("order") or "most-relevant").strip(),
        limit=coerce_int(
            req.args.get("limit"),
            default=default_limit,
            minimum=1,
            maximum=MAX_PAGE_SIZE,
        ),
        offset=coerce_int(req.args.get("offset"), default=0, minimum=0),
    )
    for arg, attribute, _ in FACET_ARGS:
        setattr(criteria, attribute, split_csv(req.args.get(arg)))
    return criteria


def search_filters_from_request(req: Request) -> SearchFilters:
    return SearchFilters(
        timeline=(req.args.get("timeline") or ALL).strip() or ALL,
        grade=(req.args.get("grade") or ALL).strip() or ALL,
        sort_by=(req.args.get("sort") or "relevance").strip(),
    )


@search_bp.get("/kits")
async def list_kits():
    api = get_search_api()
    criteria = criteria_from_request(request, api.config.limits.default_limit)
    slug_selections = {
        keyword: split_csv(request.args.get(f"{arg}_slug"))
        for arg, _, keyword in FACET_ARGS
    }
    try:
        if any(slug_selections.values()):
            criteria = await api.resolve_criteria_slugs(criteria, **slug_selections)
        page = await api.get_filtered_kits(criteria)
    except (KitSearchError, FilterDataError) as exc:
        return jsonify({"error": str(exc)}), 503
    except Exception:
        logger.exception("Resolving kit filter slugs failed")
        return jsonify({"error": str(KitSearchError())}), 503
    return jsonify(page.as_dict())


@search_bp.get("/search")
async def search():
    query = (request.args.get("q") or "").strip()
    filters = search_filters_from_request(request)
    logger.debug("Route search query=%r filters=%s", query, filters)
    result = await get_search_api().search_kits_and_mobile_suits(query, filters)
    return jsonify(result.as_dict())


@search_bp.get("/search/suggestions")
async def suggestions():
    query = (request.args.get("q") or "").strip()
    items = await get_search_api().get_search_suggestions(query)
    return jsonify({"suggestions": items})


@search_bp.get("/filters")
async def filter_data():
    try:
        data = await get_search_api().get_filter_data()
    except FilterDataError as exc:
        return jsonify({"error": str(exc)}), 503
    return jsonify(data)


@search_bp.get("/filters/options")
async def filter_options():
    return jsonify(await get_search_api().get_filter_options())
