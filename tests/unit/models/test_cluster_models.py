"""Tests for cluster identity models."""

from berth.models.cluster import ClusterInfo, ServiceInstance, ZookeeperEnsemble


def test_service_instance_host_port() -> None:
    assert ServiceInstance(node="n1", address="10.0.0.1", port=8080).host_port == "10.0.0.1:8080"
    assert ServiceInstance(node="n1", address="10.0.0.1", port=0).host_port == "10.0.0.1"


def test_zookeeper_ensemble_parse_strips_blanks() -> None:
    ensemble = ZookeeperEnsemble.parse(" zk1:2181, zk2:2181,,")

    assert ensemble.servers == ("zk1:2181", "zk2:2181")
    assert ensemble.connection_string == "zk1:2181,zk2:2181"


def test_zookeeper_urls() -> None:
    ensemble = ZookeeperEnsemble.parse("zk1:2181,zk2:2181")

    assert ensemble.url() == "zk://zk1:2181,zk2:2181"
    assert ensemble.url("/mesos") == "zk://zk1:2181,zk2:2181/mesos"


def test_cluster_info_template_context() -> None:
    info = ClusterInfo(
        mesos_url="http://10.0.0.1:5050",
        mesos_leader="master@10.0.0.1:5050",
        cluster_name="prod",
        zookeeper=ZookeeperEnsemble.parse("zk1:2181"),
    )

    assert info.template_context() == {
        "name": "prod",
        "mesos_url": "http://10.0.0.1:5050",
        "mesos_leader": "master@10.0.0.1:5050",
        "zookeeper": "zk1:2181",
        "zookeeper_url": "zk://zk1:2181",
        "mesos_zk_url": "zk://zk1:2181/mesos",
    }
