import time
import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict
from typing import List, Optional

from config import (
    CACHE_MAX_ENTRIES,
    CATALOG_PATH,
    CORS_ORIGINS,
    DEFAULT_CACHE_TTL_MS,
    DEFAULT_POPULAR_LIMIT,
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_SUGGESTION_LIMIT,
    LOG_LEVEL,
    QUERY_LOG_FILE,
    STATIC_CACHE_TTL_MS,
)
from cache.response_cache import ResponseCache
from cache.http_cache import cached_response
from catalog.store import CatalogError, ProductCatalog
from search.relevance import rank_products
from search.suggestions import popular_terms, suggest
from query_logging.query_logger import log_query_async

logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("catalog_api")


# API Contract Models
class Product(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    description: str = ""
    category: Optional[str] = None
    subcategory: Optional[str] = None
    image: Optional[str] = None
    images: List[str] = []
    isTopProduct: bool = False
    isMostSelling: bool = False
    featured: bool = False

class ProductListResponse(BaseModel):
    products: List[Product]
    totalProducts: int
    totalPages: int
    currentPage: int

class FlaggedProductsResponse(BaseModel):
    success: bool = True
    count: int
    products: List[Product]

class ProductImagesResponse(BaseModel):
    images: List[str]

class Category(BaseModel):
    name: str
    subcategories: List[str]
    productCount: int

class SearchHit(Product):
    searchScore: float

class SearchResponse(BaseModel):
    query: str
    totalResults: int
    products: List[SearchHit]

class SuggestionsResponse(BaseModel):
    suggestions: List[str]

class PopularTermsResponse(BaseModel):
    popularTerms: List[str]
    totalProducts: int

class CacheStats(BaseModel):
    entries: int
    keys: List[str]
    message: str

class CacheStatsResponse(BaseModel):
    success: bool = True
    stats: CacheStats


# Dependencies resolve the shared objects owned by the app instance
def get_cache(request: Request) -> ResponseCache:
    return request.app.state.response_cache

def get_catalog(request: Request) -> ProductCatalog:
    return request.app.state.catalog


def _flagged_endpoint(app: FastAPI, path: str, flag: str):
    @app.get(path, response_model=FlaggedProductsResponse)
    def flagged_products(
        request: Request,
        response: Response,
        limit: int = Query(default=6, ge=1, le=100),
        cache: ResponseCache = Depends(get_cache),
        catalog: ProductCatalog = Depends(get_catalog),
    ):
        def load():
            products = catalog.flagged(flag, limit)
            return {"success": True, "count": len(products), "products": products}
        return cached_response(cache, request, response, STATIC_CACHE_TTL_MS, load)
    return flagged_products


def create_app(
    catalog: Optional[ProductCatalog] = None,
    cache: Optional[ResponseCache] = None,
    query_log_file: Optional[str] = None,
) -> FastAPI:
    catalog = catalog if catalog is not None else ProductCatalog(CATALOG_PATH)
    cache = cache if cache is not None else ResponseCache(max_entries=CACHE_MAX_ENTRIES)

    # Catalog is loaded once at boot so the first request doesn't read the file
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Server startup: loading product catalog...")
        if not app.state.catalog.loaded:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, app.state.catalog.load)
        logger.info("Ready for requests (%d products).", len(app.state.catalog))
        yield
        logger.info("Server shutting down.")

    app = FastAPI(title="Furniture Catalog API", lifespan=lifespan)
    app.state.catalog = catalog
    app.state.response_cache = cache
    app.state.query_log_file = query_log_file or QUERY_LOG_FILE

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Endpoints
    @app.get("/")
    def read_root(cache: ResponseCache = Depends(get_cache)):
        return {"message": "Furniture catalog API is running", "cache_stats": cache.stats()}

    @app.get("/health")
    def health(catalog: ProductCatalog = Depends(get_catalog)):
        return {"status": "ok", "catalog_loaded": catalog.loaded, "products": len(catalog)}

    # Product listing
    @app.get("/api/products", response_model=ProductListResponse)
    @app.get("/api/products/filter", response_model=ProductListResponse)
    def list_products(
        request: Request,
        response: Response,
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=10, ge=1, le=200),
        category: Optional[str] = None,
        search: Optional[str] = None,
        cache: ResponseCache = Depends(get_cache),
        catalog: ProductCatalog = Depends(get_catalog),
    ):
        return cached_response(
            cache, request, response, DEFAULT_CACHE_TTL_MS,
            lambda: catalog.list_products(page=page, limit=limit, category=category, search=search),
        )

    # Homepage sections change rarely, so they get the longer TTL
    _flagged_endpoint(app, "/api/products/featured", "featured")
    _flagged_endpoint(app, "/api/products/top-products", "isTopProduct")
    _flagged_endpoint(app, "/api/products/most-selling", "isMostSelling")
    _flagged_endpoint(app, "/api/products/best-selling", "isMostSelling")

    @app.get("/api/products/{product_id}/images", response_model=ProductImagesResponse)
    def product_images(
        product_id: str,
        request: Request,
        response: Response,
        cache: ResponseCache = Depends(get_cache),
        catalog: ProductCatalog = Depends(get_catalog),
    ):
        def load():
            images = catalog.images(product_id)
            if images is None:
                raise HTTPException(status_code=404, detail="Product not found")
            return {"images": images}
        return cached_response(cache, request, response, DEFAULT_CACHE_TTL_MS, load)

    @app.get("/api/products/{product_id}", response_model=Product)
    def product_detail(
        product_id: str,
        request: Request,
        response: Response,
        cache: ResponseCache = Depends(get_cache),
        catalog: ProductCatalog = Depends(get_catalog),
    ):
        def load():
            product = catalog.get(product_id)
            if product is None:
                raise HTTPException(status_code=404, detail="Product not found")
            return product
        return cached_response(cache, request, response, DEFAULT_CACHE_TTL_MS, load)

    @app.get("/api/categories", response_model=List[Category])
    def list_categories(
        request: Request,
        response: Response,
        cache: ResponseCache = Depends(get_cache),
        catalog: ProductCatalog = Depends(get_catalog),
    ):
        return cached_response(cache, request, response, STATIC_CACHE_TTL_MS, catalog.categories)

    # Search
    @app.get("/api/search", response_model=SearchResponse)
    async def search_products(
        request: Request,
        response: Response,
        background_tasks: BackgroundTasks,
        q: str = "",
        limit: int = Query(default=DEFAULT_SEARCH_LIMIT, ge=1, le=200),
        cache: ResponseCache = Depends(get_cache),
        catalog: ProductCatalog = Depends(get_catalog),
    ):
        start_time = time.time()

        def load():
            hits = rank_products(q, catalog.all(), limit=limit)
            return {"query": q, "totalResults": len(hits), "products": hits}

        payload = cached_response(cache, request, response, DEFAULT_CACHE_TTL_MS, load)

        if q.strip():
            log_data = {
                "query": q,
                "results": payload["totalResults"],
                "top_result": payload["products"][0].get("id") if payload["products"] else None,
                "cache_hit": response.headers.get("X-Cache-Status") == "HIT",
                "latency_ms": int((time.time() - start_time) * 1000),
            }
            background_tasks.add_task(log_query_async, log_data, request.app.state.query_log_file)
        return payload

    @app.get("/api/search/suggestions", response_model=SuggestionsResponse)
    def search_suggestions(
        q: str = "",
        limit: int = Query(default=DEFAULT_SUGGESTION_LIMIT, ge=0, le=50),
        catalog: ProductCatalog = Depends(get_catalog),
    ):
        return {"suggestions": suggest(q, catalog.search, limit)}

    @app.get("/api/search/popular", response_model=PopularTermsResponse)
    def search_popular(
        request: Request,
        response: Response,
        limit: int = Query(default=DEFAULT_POPULAR_LIMIT, ge=1, le=100),
        cache: ResponseCache = Depends(get_cache),
        catalog: ProductCatalog = Depends(get_catalog),
    ):
        def load():
            # Featured products first, mirroring the storefront's sample
            products = sorted(catalog.all(), key=lambda p: not p.get("featured"))[:100]
            return {"popularTerms": popular_terms(products, limit), "totalProducts": len(products)}
        return cached_response(cache, request, response, STATIC_CACHE_TTL_MS, load)

    # Cache administration
    @app.get("/api/cache/stats", response_model=CacheStatsResponse)
    def cache_stats(cache: ResponseCache = Depends(get_cache)):
        stats = cache.stats()
        return {
            "success": True,
            "stats": {
                "entries": stats["count"],
                "keys": stats["keys"],
                "message": f"Cache contains {stats['count']} entries",
            },
        }

    @app.post("/api/cache/clear")
    def cache_clear(cache: ResponseCache = Depends(get_cache)):
        cache.clear()
        logger.info("[CACHE] Cache cleared")
        return {"success": True, "message": "Cache cleared"}

    @app.post("/api/catalog/reload")
    def catalog_reload(
        cache: ResponseCache = Depends(get_cache),
        catalog: ProductCatalog = Depends(get_catalog),
    ):
        try:
            loaded = catalog.reload()
        except CatalogError as e:
            raise HTTPException(status_code=500, detail=f"Catalog reload failed: {e}")
        cache.clear()
        logger.info("[CACHE] Cache cleared after catalog reload")
        return {"success": loaded, "products": len(catalog)}

    return app


app = create_app()
