import requests
import time
import os

# Point at a deployed instance with TEST_API_URL, default to localhost
BASE_URL = os.getenv("TEST_API_URL", "http://localhost:8000")

checks = [
    # Cached listings (second call should be a HIT)
    ("/api/products", {"limit": 5}),
    ("/api/products", {"limit": 5}),
    ("/api/products/top-products", {}),
    ("/api/categories", {}),

    # Search and autocomplete
    ("/api/search", {"q": "steel almirah"}),
    ("/api/search/suggestions", {"q": "ch"}),
    ("/api/search/popular", {"limit": 5}),
    ("/api/cache/stats", {}),
]

def run_checks():
    print(f"🚀 Starting endpoint verification at: {BASE_URL}\n")
    for path, params in checks:
        print(f"GET {path} {params or ''}")
        try:
            start = time.time()
            response = requests.get(BASE_URL + path, params=params, timeout=15)
            latency = int((time.time() - start) * 1000)

            if response.status_code == 200:
                print(f"  ✅ [200 OK] in {latency}ms (cache: {response.headers.get('X-Cache-Status', '-')})")
                print(f"  Body Preview: {response.text[:80]}...")
            else:
                print(f"  ❌ [Error {response.status_code}]: {response.text}")
        except requests.RequestException as e:
            print(f"  ❌ [Fail]: {e}")
        print("-" * 50)

if __name__ == "__main__":
    run_checks()
