import copy
import itertools

import psycopg2
import pytest

from repositories.asset_repo import AssetAccountRepository
from repositories.budget_repo import BudgetRepository
from repositories.cashflow_repo import CashflowRepository
from repositories.goal_repo import GoalRepository
from repositories.settings_repo import SettingsRepository
from services.metrics import effective_rate
from services.mirror_service import GitHubMirror
from services.report_service import ReportService


class InMemoryDocuments:
    """Dict-backed stand-in for DocumentRepository with the same method contract."""

    def __init__(self):
        self.collections: dict[tuple[str, str], dict[str, dict]] = {}
        self._ids = itertools.count(1)
        self.fail_on_add_number = None  # 1-based; that add and later ones raise
        self.add_calls = 0

    def _bucket(self, namespace, collection):
        return self.collections.setdefault((namespace, collection), {})

    def add(self, namespace, collection, data):
        self.add_calls += 1
        if self.fail_on_add_number is not None and self.add_calls >= self.fail_on_add_number:
            raise psycopg2.OperationalError("connection lost")
        doc_id = f"doc{next(self._ids):04d}"
        self._bucket(namespace, collection)[doc_id] = {
            k: copy.deepcopy(v) for k, v in data.items() if k != "id"
        }
        return doc_id

    def get(self, namespace, collection, doc_id):
        body = self._bucket(namespace, collection).get(doc_id)
        return {**copy.deepcopy(body), "id": doc_id} if body is not None else None

    def list(self, namespace, collection, order_by=None, descending=False):
        items = [{**copy.deepcopy(body), "id": doc_id}
                 for doc_id, body in self._bucket(namespace, collection).items()]
        if order_by:
            items.sort(key=lambda d: d["id"])
            items.sort(key=lambda d: str(d.get(order_by) or ""), reverse=descending)
        return items

    def list_namespaces(self, prefix):
        return sorted(ns for (ns, _), bucket in self.collections.items() if bucket and ns.startswith(prefix))

    def set(self, namespace, collection, doc_id, data, merge=False):
        bucket = self._bucket(namespace, collection)
        body = {k: copy.deepcopy(v) for k, v in data.items() if k != "id"}
        if merge and doc_id in bucket:
            bucket[doc_id].update(body)
        else:
            bucket[doc_id] = body

    def update(self, namespace, collection, doc_id, fields):
        bucket = self._bucket(namespace, collection)
        if doc_id not in bucket:
            return False
        bucket[doc_id].update(copy.deepcopy(fields))
        return True

    def delete(self, namespace, collection, doc_id):
        return self._bucket(namespace, collection).pop(doc_id, None) is not None


class FixedRates:
    """ExchangeRateService stand-in with a constant market rate."""

    def __init__(self, rate=30.0):
        self.rate = rate

    def market_rate(self):
        return self.rate

    def effective_rate(self, settings):
        return effective_rate(settings, self.rate)


@pytest.fixture
def user_id():
    return 4242


@pytest.fixture
def documents():
    return InMemoryDocuments()


@pytest.fixture
def cashflow_repo(documents):
    return CashflowRepository(documents)


@pytest.fixture
def account_repo(documents):
    return AssetAccountRepository(documents)


@pytest.fixture
def budget_repo(documents):
    return BudgetRepository(documents)


@pytest.fixture
def goal_repo(documents):
    return GoalRepository(documents)


@pytest.fixture
def settings_repo(documents):
    return SettingsRepository(documents)


@pytest.fixture
def rates():
    return FixedRates(30.0)


@pytest.fixture
def disabled_mirror():
    return GitHubMirror(repo="", token="")


@pytest.fixture
def reports(cashflow_repo, account_repo, budget_repo, goal_repo, settings_repo, rates):
    return ReportService(cashflow_repo, account_repo, budget_repo, goal_repo, settings_repo, rates)
