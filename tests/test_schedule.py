from khutulun.schedule import schedule_host, schedule_ip_port


def test_schedule_host_sets_new_value():
    capability = {"attributes": {"host": {"$value": "old"}}}
    assert schedule_host(capability, "new") is True
    assert capability["attributes"]["host"]["$value"] == "new"


def test_schedule_host_same_value_is_unchanged():
    capability = {"attributes": {"host": {"$value": "same"}}}
    assert schedule_host(capability, "same") is False
    assert capability["attributes"]["host"]["$value"] == "same"


def test_schedule_host_missing_value_is_set():
    capability = {"attributes": {"host": {}}}
    assert schedule_host(capability, "h1") is True
    assert capability["attributes"]["host"] == {"$value": "h1"}


def test_schedule_host_without_attribute_map():
    assert schedule_host({"attributes": {}}, "h") is False
    assert schedule_host({}, "h") is False
    assert schedule_host({"attributes": {"host": "plain"}}, "h") is False
    assert schedule_host(None, "h") is False


def test_schedule_ip_port_sets_both():
    relationship = {"attributes": {"ip": {}, "port": {"$value": 0}}}
    assert schedule_ip_port(relationship, "10.0.0.1", 8080) is True
    assert relationship["attributes"]["ip"]["$value"] == "10.0.0.1"
    assert relationship["attributes"]["port"]["$value"] == 8080


def test_schedule_ip_port_missing_port_still_sets_ip():
    relationship = {"attributes": {"ip": {}}}
    assert schedule_ip_port(relationship, "10.0.0.1", 8080) is False
    assert relationship["attributes"]["ip"]["$value"] == "10.0.0.1"


def test_schedule_ip_port_missing_ip():
    relationship = {"attributes": {"port": {}}}
    assert schedule_ip_port(relationship, "10.0.0.1", 8080) is False
    assert relationship["attributes"]["port"] == {}