"""Basic usage examples for ReviewCheck."""

from reviewcheck import AnalysisConfig, AnalysisJob, AnalysisOrchestrator, AnalysisWorkerPool
from reviewcheck.cli import build_router
from reviewcheck.services.store import InMemoryProductStore

SAMPLE_REVIEWS = [
    {"id": "R1", "text": "Battery easily lasts two days. The camera struggles in low light though.", "rating": 4,
     "verified": True},
    {"id": "R2", "text": "Best product ever!!! Buy it now!!!", "rating": 5, "verified": False},
    {"id": "R3", "text": "best product ever buy it now", "rating": 5, "verified": False},
    {"id": "R4", "text": "Returned it after a week, the charging port stopped working.", "rating": 2,
     "verified": True},
]


def example_single_product():
    """Example: analyze one product and print the grade."""
    router = build_router()
    print(f"Optimal provider: {router.status()['optimal']}")

    orchestrator = AnalysisOrchestrator(router, InMemoryProductStore(), AnalysisConfig.from_settings())
    record = orchestrator.analyze("B0EXAMPLE1", SAMPLE_REVIEWS, reported_total=4)

    print(f"Status: {record.status.value}")
    if record.status.value == "completed":
        print(f"Grade {record.grade}: {record.fake_percentage}% fake, adjusted rating {record.adjusted_rating}")
        print(record.explanation)
    else:
        print(f"Error: {record.error_message}")


def example_worker_pool():
    """Example: analyze several products concurrently."""
    orchestrator = AnalysisOrchestrator(build_router(), InMemoryProductStore())
    jobs = [AnalysisJob(f"B0EXAMPLE{i}", SAMPLE_REVIEWS) for i in range(2, 5)]
    with AnalysisWorkerPool(orchestrator, max_workers=3) as pool:
        for key, record in pool.run_all(jobs).items():
            print(f"{key}: {record.status.value} {record.grade or ''}")


def example_cost_comparison():
    """Example: compare provider costs for a large product."""
    for name, entry in build_router().cost_comparison(1000).items():
        cost = f"${entry['cost']:.4f}" if entry["available"] else "unavailable"
        print(f"{name}: {cost}")


if __name__ == "__main__":
    example_cost_comparison()
    example_single_product()
    example_worker_pool()
