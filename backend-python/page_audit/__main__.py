import argparse, asyncio, json, logging, os, sys
from .auditor import run_audit, LINK_SAMPLE_LIMIT
from .utils import is_absolute_http_url

def main(argv=None) -> int:
    p = argparse.ArgumentParser(prog="page_audit", description="Audit a single web page and print the report as JSON.")
    p.add_argument("url")
    p.add_argument("--links", type=int, default=LINK_SAMPLE_LIMIT, help="Outbound links to health-check")
    args = p.parse_args(argv)

    logging.basicConfig(
        level=os.getenv('LOG_LEVEL','WARNING').upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if not is_absolute_http_url(args.url):
        print(f"Error: not an absolute http(s) URL: {args.url}", file=sys.stderr)
        return 2

    report = asyncio.run(run_audit(args.url, link_limit=max(args.links, 0)))
    print(json.dumps(report.to_dict(), indent=2))
    return 1 if report.error else 0

if __name__ == "__main__":
    sys.exit(main())
