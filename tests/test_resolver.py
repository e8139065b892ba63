import unittest

from src.catalog.catalog import Kind, MatchParameters
from src.cluster.helm import ReleaseSnapshot
from src.common.errors import InvalidMatchError, ResolutionError, UnsupportedKindError
from src.recommender.resolver import RELEASE_STATUS_FILTER, ResourceResolver, build_label_selector


def _release(name: str, chart: str, status: str = "deployed") -> ReleaseSnapshot:
    return ReleaseSnapshot(
        name=name,
        namespace="apps",
        status=status,
        chart_name=chart,
        chart_version="1.2.3",
        config={"replicas": 2},
    )


class _FakeReleases:
    def __init__(self, releases) -> None:
        self.releases = releases
        self.get_calls = []
        self.list_calls = []

    def get_release(self, name, namespace):
        self.get_calls.append((name, namespace))
        return _release(name, "single")

    def list_releases(self, namespace, status_filter):
        self.list_calls.append((namespace, tuple(status_filter)))
        return list(self.releases)


class _FakeCluster:
    def __init__(self, pods=None, resources=None) -> None:
        self.pods = pods or []
        self.resources = resources or []
        self.selectors = []
        self.crd_calls = []

    def get_pods_by_label_selector(self, selector, namespace):
        self.selectors.append((selector, namespace))
        return list(self.pods)

    def list_custom_resources(self, group, version, resource, namespace):
        self.crd_calls.append((group, version, resource, namespace))
        return list(self.resources)


class ReleaseResolutionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.releases = _FakeReleases(
            [
                _release("web", "nginx"),
                _release("web-canary", "nginx", status="pending-upgrade"),
                _release("old-web", "nginx", status="superseded"),
                _release("broken-web", "nginx", status="failed"),
                _release("db", "postgresql"),
            ]
        )
        self.resolver = ResourceResolver(_FakeCluster(), self.releases)

    def test_exact_name_resolves_single_release(self) -> None:
        candidates = self.resolver.resolve(Kind.HELM_RELEASE, MatchParameters(namespace="apps", name="web"))
        self.assertEqual(len(candidates), 1)
        self.assertEqual(candidates[0].name, "web")
        self.assertEqual(self.releases.get_calls, [("web", "apps")])
        self.assertEqual(self.releases.list_calls, [])
        self.assertEqual(candidates[0].document, {"version": "1.2.3", "values": {"replicas": 2}})

    def test_chart_name_filters_by_chart_and_status(self) -> None:
        candidates = self.resolver.resolve(
            Kind.HELM_RELEASE, MatchParameters(namespace="apps", chart_name="nginx")
        )
        self.assertEqual([candidate.name for candidate in candidates], ["web", "web-canary", "broken-web"])
        self.assertEqual(self.releases.list_calls, [("apps", RELEASE_STATUS_FILTER)])

    def test_release_match_requires_exactly_one_selector(self) -> None:
        with self.assertRaises(InvalidMatchError):
            self.resolver.resolve(Kind.HELM_RELEASE, MatchParameters(namespace="apps"))
        with self.assertRaises(InvalidMatchError):
            self.resolver.resolve(
                Kind.HELM_RELEASE, MatchParameters(namespace="apps", name="web", chart_name="nginx")
            )

    def test_accessor_failure_becomes_resolution_error(self) -> None:
        def boom(name, namespace):
            raise RuntimeError("release: not found")

        self.releases.get_release = boom
        with self.assertRaises(ResolutionError) as ctx:
            self.resolver.resolve(Kind.HELM_RELEASE, MatchParameters(namespace="apps", name="web"))
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)


class PodResolutionTests(unittest.TestCase):
    def test_label_selector_contains_every_pair(self) -> None:
        selector = build_label_selector({"app": "web", "tier": "frontend"})
        self.assertEqual(sorted(selector.split(",")), ["app=web", "tier=frontend"])

    def test_label_selector_is_deterministic(self) -> None:
        self.assertEqual(
            build_label_selector({"tier": "frontend", "app": "web"}),
            build_label_selector({"app": "web", "tier": "frontend"}),
        )
        self.assertEqual(build_label_selector({}), "")

    def test_pods_returned_by_accessor_are_resolved(self) -> None:
        pods = [
            {"metadata": {"name": "web-1", "namespace": "default"}},
            {"metadata": {"name": "web-2"}},
        ]
        cluster = _FakeCluster(pods=pods)
        resolver = ResourceResolver(cluster, _FakeReleases([]))
        candidates = resolver.resolve(
            Kind.POD, MatchParameters(namespace="default", labels={"app": "web", "tier": "frontend"})
        )
        self.assertEqual(len(cluster.selectors), 1)
        selector, namespace = cluster.selectors[0]
        self.assertIn("app=web", selector.split(","))
        self.assertIn("tier=frontend", selector.split(","))
        self.assertEqual(namespace, "default")
        self.assertEqual([candidate.document for candidate in candidates], pods)
        self.assertEqual([candidate.object_id("ignored") for candidate in candidates], ["pod/default/web-1", "pod/default/web-2"])


class CustomResourceResolutionTests(unittest.TestCase):
    def test_lists_all_objects_without_filtering(self) -> None:
        resources = [{"metadata": {"name": "a"}}, {"metadata": {"name": "b"}, "status": {}}]
        cluster = _FakeCluster(resources=resources)
        resolver = ResourceResolver(cluster, _FakeReleases([]))
        match = MatchParameters(namespace="cert-manager", group="cert-manager.io", version="v1", resource="certificates")
        candidates = resolver.resolve(Kind.CRD_LIST, match)
        self.assertEqual(cluster.crd_calls, [("cert-manager.io", "v1", "certificates", "cert-manager")])
        self.assertEqual([candidate.document for candidate in candidates], resources)
        self.assertEqual(candidates[0].object_id("p1"), "cert-manager.io/v1/certificates/p1")

    def test_missing_resource_is_rejected(self) -> None:
        resolver = ResourceResolver(_FakeCluster(), _FakeReleases([]))
        with self.assertRaises(InvalidMatchError):
            resolver.resolve(Kind.CRD_LIST, MatchParameters(group="example.com", version="v1"))


class DispatchTests(unittest.TestCase):
    def test_string_kinds_are_accepted(self) -> None:
        cluster = _FakeCluster(pods=[{"metadata": {"name": "x"}}])
        resolver = ResourceResolver(cluster, _FakeReleases([]))
        self.assertEqual(len(resolver.resolve("pod", MatchParameters(namespace="ns"))), 1)

    def test_unknown_kind_is_rejected(self) -> None:
        resolver = ResourceResolver(_FakeCluster(), _FakeReleases([]))
        with self.assertRaises(UnsupportedKindError):
            resolver.resolve("deployment", MatchParameters())

    def test_custom_strategy_can_be_registered(self) -> None:
        class _Static:
            def resolve(self, match):
                return ["sentinel"]

        resolver = ResourceResolver(_FakeCluster(), _FakeReleases([]), strategies={Kind.POD: _Static()})
        self.assertEqual(resolver.resolve(Kind.POD, MatchParameters()), ["sentinel"])


if __name__ == "__main__":
    unittest.main()
