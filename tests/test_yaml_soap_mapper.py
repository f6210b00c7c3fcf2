"""
Tests for YAML payload to SOAP XML mapping
"""
import pytest
from lxml import etree

from conftest import element_tree_names, mapping_tree_names
from exceptions import ConversionError
from yaml_soap_mapper import (
    MDM_NS, SOAP_ENV_NS, NodeKind,
    build_envelope, classify, convert, load_payload, yaml_to_soap_xml
)


def to_string(element):
    return etree.tostring(element).decode()


class TestConvert:
    """convert() against a bare parent element"""

    def test_scalar_leaf(self):
        root = etree.Element("root")
        convert({"name": "Widget"}, root)

        assert to_string(root) == "<root><name>Widget</name></root>"

    def test_list_of_records(self):
        root = etree.Element("root")
        convert({"items": [{"id": 1}, {"id": 2}]}, root)

        assert to_string(root) == (
            "<root><items>"
            "<ExtendedLocalDataVO><id>1</id></ExtendedLocalDataVO>"
            "<ExtendedLocalDataVO><id>2</id></ExtendedLocalDataVO>"
            "</items></root>"
        )

    def test_local_data_list_merged_into_parent(self):
        root = etree.Element("localDataList")
        convert({"localDataList": {"id": 1}}, root)

        assert to_string(root) == "<localDataList><id>1</id></localDataList>"

    def test_local_data_list_nested_under_other_parent(self):
        """Only a localDataList parent absorbs the key"""
        root = etree.Element("root")
        convert({"localDataList": {"id": 1}}, root)

        assert to_string(root) == "<root><localDataList><id>1</id></localDataList></root>"

    def test_nested_mapping_mirrors_key_structure(self):
        payload = {
            "client": {
                "code": "C1",
                "address": {"city": "Leeds", "postcode": {"outward": "LS1", "inward": "4AP"}},
                "name": "Acme"
            },
            "source": "EDM"
        }
        root = etree.Element("root")
        convert(payload, root)

        assert element_tree_names(root) == mapping_tree_names(payload)

    def test_key_order_preserved(self):
        root = etree.Element("root")
        convert({"zeta": 1, "alpha": 2, "mid": 3}, root)

        assert [child.tag for child in root] == ["zeta", "alpha", "mid"]

    @pytest.mark.parametrize("count", [0, 1, 5])
    def test_sequence_items_become_list_elements(self, count):
        root = etree.Element("root")
        convert([{"n": i} for i in range(count)], root)

        assert len(root) == count
        assert all(child.tag == "ExtendedLocalDataVO" for child in root)
        assert [child.findtext("n") for child in root] == [str(i) for i in range(count)]

    def test_null_scalar_is_empty_text(self):
        root = etree.Element("root")
        convert({"missing": None}, root)

        assert root.find("missing").text == ""
        assert len(root.find("missing")) == 0

    def test_sequence_of_scalars(self):
        root = etree.Element("root")
        convert({"tags": ["a", "b"]}, root)

        assert [item.text for item in root.find("tags")] == ["a", "b"]

    def test_invalid_element_name_rejected(self):
        root = etree.Element("root")

        with pytest.raises(ConversionError, match="not a valid XML element name"):
            convert({"client": {"bad key": "x"}}, root)

    def test_invalid_element_name_reports_path(self):
        root = etree.Element("root")

        with pytest.raises(ConversionError, match="/client"):
            convert({"client": {"1st": "x"}}, root)

    def test_unclassifiable_node_rejected(self):
        root = etree.Element("root")

        with pytest.raises(ConversionError, match="set"):
            convert({"values": {1, 2}}, root)

    def test_control_character_rejected(self):
        root = etree.Element("root")

        with pytest.raises(ConversionError, match="/client/name"):
            convert({"client": {"name": "bad\x01"}}, root)


class TestClassify:

    @pytest.mark.parametrize("value,kind", [
        ({"a": 1}, NodeKind.MAPPING),
        ([1, 2], NodeKind.SEQUENCE),
        ((1, 2), NodeKind.SEQUENCE),
        ("text", NodeKind.SCALAR),
        (3, NodeKind.SCALAR),
        (2.5, NodeKind.SCALAR),
        (True, NodeKind.SCALAR),
        (None, NodeKind.SCALAR),
    ])
    def test_kinds(self, value, kind):
        assert classify(value) is kind

    def test_unknown_type(self):
        with pytest.raises(ConversionError):
            classify(object())


class TestLoadPayload:

    def test_scalars_kept_verbatim(self):
        payload = load_payload("code: '007'\nplain: 007\namount: 1.50\nflag: yes\nempty:\ntilde: ~\n")

        assert payload == {
            "code": "007",
            "plain": "007",
            "amount": "1.50",
            "flag": "yes",
            "empty": None,
            "tilde": None,
        }

    def test_quoted_null_stays_text(self):
        assert load_payload("value: 'null'") == {"value": "null"}

    def test_invalid_yaml(self):
        with pytest.raises(ConversionError, match="not valid YAML"):
            load_payload("a: [1, 2")


class TestEnvelope:
    """Full SOAP request body"""

    def test_skeleton(self):
        envelope = build_envelope({"id": "1"})

        assert envelope.tag == f"{{{SOAP_ENV_NS}}}Envelope"
        body = envelope[0]
        assert body.tag == f"{{{SOAP_ENV_NS}}}Body"
        upload = body[0]
        assert upload.tag == f"{{{MDM_NS}}}UploadExtendedLocalMasterData"
        assert [child.tag for child in upload] == ["localDataList"]

    def test_serialized_request(self, client_payload):
        xml_text = yaml_to_soap_xml(client_payload)

        assert xml_text.startswith("<?xml")
        root = etree.fromstring(xml_text.encode("utf-8"))
        local_data_list = root.find(f".//{{{MDM_NS}}}UploadExtendedLocalMasterData/localDataList")

        assert local_data_list is not None
        # redundant localDataList key merged, not nested
        assert local_data_list.find("localDataList") is None
        records = local_data_list.findall("ExtendedLocalDataVO")
        assert [record.findtext("LocalCode") for record in records] == ["00042", "00043"]
        assert [record.findtext("Active") for record in records] == ["true", "false"]

    def test_top_level_sequence(self):
        xml_text = yaml_to_soap_xml("- LocalCode: A\n- LocalCode: B\n")
        root = etree.fromstring(xml_text.encode("utf-8"))
        local_data_list = root.find(".//localDataList")

        assert len(local_data_list) == 2

    def test_operation_override(self):
        xml_text = yaml_to_soap_xml("id: 1", operation="UploadLocalMasterData")
        root = etree.fromstring(xml_text.encode("utf-8"))

        assert root.find(f".//{{{MDM_NS}}}UploadLocalMasterData") is not None

    def test_invalid_operation_rejected(self):
        with pytest.raises(ConversionError, match="SOAP operation"):
            yaml_to_soap_xml("id: 1", operation="Upload#Data")

    def test_control_character_in_payload(self):
        with pytest.raises(ConversionError, match="cannot be written as XML text"):
            yaml_to_soap_xml('name: "bad\\x01"')

    def test_non_ascii_text(self):
        xml_text = yaml_to_soap_xml("LocalName: Café Zürich")
        root = etree.fromstring(xml_text.encode("utf-8"))

        assert root.findtext(".//LocalName") == "Café Zürich"
