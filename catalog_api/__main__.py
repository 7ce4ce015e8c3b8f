import argparse
import os

import uvicorn


def main():
    parser = argparse.ArgumentParser(description="Run the catalog API server.")
    parser.add_argument("--basic", action="store_true", help="serve the basic items/users variant")
    parser.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "3000")))
    args = parser.parse_args()

    factory = "catalog_api.basic_app:create_basic_app" if args.basic else "catalog_api.app:create_app"
    uvicorn.run(factory, factory=True, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
