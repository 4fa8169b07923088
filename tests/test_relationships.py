from unittest import mock

import pytest
from docker.errors import DockerException
from requests.exceptions import ConnectionError as RequestsConnectionError

from slo import db
from slo.docker_ops import DockerClientFactory
from slo.labels import SCOPE, SYSTEM
from slo.models import Relationship, RelationshipKind, link


def _names(rels):
    return [r.target for r in rels]


BASE_RELS = [link("db"), link("cache")]


def test_plain_system_service_keeps_base_relationships(make_service, runtime):
    runtime.images.add("img:1")
    svc = make_service(rels=BASE_RELS)
    assert svc.dependent_services() == BASE_RELS


def test_explicit_index_appends_required_links_in_order(make_service, runtime):
    runtime.images.add("img:1")
    svc = make_service(name="web", deps={"web": ["network", "udev"], "other": ["x"]}, rels=BASE_RELS)
    rels = svc.dependent_services()
    assert _names(rels) == ["db", "cache", "network", "udev"]
    assert all(not r.optional for r in rels)
    assert all(r.kind is RelationshipKind.LINK for r in rels)


@pytest.mark.parametrize(
    "labels,image_present",
    [
        ({SCOPE: SYSTEM}, True),
        ({SCOPE: SYSTEM}, False),
        ({}, True),
        ({}, False),
    ],
)
def test_syslog_driver_adds_one_optional_syslog_link(make_service, runtime, labels, image_present):
    if image_present:
        runtime.images.add("img:1")
    svc = make_service(labels=labels, log_driver="syslog")
    syslog = [r for r in svc.dependent_services() if r.target == "syslog"]
    assert syslog == [Relationship("syslog", RelationshipKind.LINK, optional=True)]


def test_user_scope_links_cloud_init_and_never_network(make_service, runtime):
    # Image is missing as well; cloud-init wins.
    svc = make_service(labels={SCOPE: "user"})
    rels = svc.dependent_services()
    assert rels == [link("cloud-init", optional=True)]
    assert "network" not in _names(rels)


def test_missing_scope_label_counts_as_user(make_service, runtime):
    runtime.images.add("img:1")
    svc = make_service(labels={})
    assert _names(svc.dependent_services()) == ["cloud-init"]


def test_system_scope_with_missing_image_links_network(make_service, runtime):
    svc = make_service(rels=BASE_RELS)
    rels = svc.dependent_services()
    assert rels == BASE_RELS + [link("network", optional=True)]


def test_failed_image_lookup_is_treated_as_missing_and_recorded(make_service, runtime):
    runtime.images.add("img:1")
    runtime.image_error = RuntimeError("daemon gone")
    svc = make_service()
    assert svc.dependent_services() == [link("network", optional=True)]

    events = db.latest_events(service_name="web")
    assert events[0]["level"] == "WARN"
    assert "daemon gone" in events[0]["message"]


def test_empty_image_is_never_missing(make_service, runtime):
    svc = make_service(image="")
    assert svc.dependent_services() == []


def test_all_implicit_links_in_order(make_service, runtime):
    svc = make_service(deps={"web": ["udev"]}, log_driver="syslog", rels=[link("db")])
    assert svc.dependent_services() == [
        link("db"),
        link("udev"),
        link("syslog", optional=True),
        link("network", optional=True),
    ]


def test_each_call_returns_a_fresh_list(make_service, runtime):
    runtime.images.add("img:1")
    svc = make_service(rels=BASE_RELS)
    first = svc.dependent_services()
    first.append(link("junk"))
    assert svc.dependent_services() == BASE_RELS


def test_daemon_dropping_during_image_lookup_links_network(make_service):
    client = mock.MagicMock()
    client.images.get.side_effect = RequestsConnectionError("daemon gone")
    svc = make_service(client_factory=DockerClientFactory(client))
    assert svc.dependent_services() == [link("network", optional=True)]
    assert "daemon gone" in db.latest_events(service_name="web")[0]["message"]


def test_unreachable_daemon_links_network(make_service):
    class _NoDaemon:
        def create(self, service):
            raise DockerException("Error while fetching server API version")

    svc = make_service(client_factory=_NoDaemon())
    assert svc.dependent_services() == [link("network", optional=True)]
    assert db.latest_events(service_name="web")[0]["level"] == "WARN"
