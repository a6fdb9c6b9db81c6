"""Unit tests for storycloak.document.model."""

from storycloak.document.model import (
    ImageFileEntity,
    ProcessEntity,
    StoryDocument,
    StoryNode,
    UnknownEntity,
    UserEntity,
    parse_entity,
)


class TestEntities:
    """Test the entity tagged union."""

    def test_process_entity_with_nested_parts(self):
        entity = parse_entity(
            {
                "ProcessId": 10,
                "Commandline": "cmd.exe",
                "ImageFile": {"FileName": "cmd.exe", "Size": 1024},
                "User": {"UserName": "alice", "DomainName": "CORP"},
            }
        )
        assert isinstance(entity, ProcessEntity)
        assert entity.process_id == 10
        assert entity.image_file == ImageFileEntity(file_name="cmd.exe", size=1024)
        assert entity.user.qualified_name == "CORP\\alice"
        assert entity.has_meaningful_data()

    def test_user_only_entity(self):
        entity = parse_entity({"User": {"UserName": "bob", "Sid": "S-1"}})
        assert entity == UserEntity(user_name="bob", sid="S-1")
        assert entity.kind == "user"

    def test_image_only_entity(self):
        entity = parse_entity({"ImageFile": {"FullPath": "C:\\a.dll"}})
        assert isinstance(entity, ImageFileEntity)
        assert entity.has_meaningful_data()

    def test_file_name_alone_is_not_meaningful(self):
        assert not ImageFileEntity(file_name="a.dll").has_meaningful_data()

    def test_unknown_entity(self):
        entity = parse_entity({"RemoteIp": "10.0.0.1"})
        assert isinstance(entity, UnknownEntity)
        assert not entity.has_meaningful_data()

    def test_non_mapping_entity(self):
        assert parse_entity("nope") is None
        assert parse_entity(None) is None

    def test_empty_user_not_meaningful(self):
        assert not UserEntity().has_meaningful_data()
        assert UserEntity().qualified_name is None

    def test_user_without_domain(self):
        assert UserEntity(user_name="carol").qualified_name == "carol"


class TestStoryNode:
    """Test node construction and derived properties."""

    def test_positional_ids_cover_both_child_collections(self):
        node = StoryNode.from_dict(
            {
                "children": [{"title": {"main": "a"}}, {"id": "b"}],
                "nestedItems": [{"title": {"main": "c"}}],
            },
            "3",
        )
        assert node.id == "node-3"
        assert [child.id for child in node.all_children] == ["node-3.0", "b", "node-3.2"]

    def test_non_mapping_children_skipped(self):
        node = StoryNode.from_dict({"id": "x", "children": [None, {"id": "y"}, 5]}, "0")
        assert [child.id for child in node.children] == ["y"]

    def test_kind_falls_back_to_action_type(self):
        assert StoryNode.from_dict({"actionType": "Network"}, "0").kind == "Network"
        assert StoryNode.from_dict({}, "0").kind == "other"

    def test_display_title(self):
        node = StoryNode.from_dict({"title": {"prefix": "Run", "main": "x.exe"}}, "0")
        assert node.display_title == "Run x.exe"

    def test_display_title_from_entity(self):
        node = StoryNode.from_dict({"entity": {"User": {"UserName": "dan"}}}, "0")
        assert node.display_title == "\\dan"
        assert StoryNode.from_dict({}, "0").display_title == "Unknown"

    def test_command_line_from_entity(self):
        node = StoryNode.from_dict({"entity": {"Commandline": "whoami /all"}}, "0")
        assert node.command_line == "whoami /all"

    def test_command_line_from_wmi_detail(self):
        node = StoryNode.from_dict(
            {"details": [{"key": "Other", "value": "x"}, {"key": "Wmi Query", "value": "SELECT 1"}]},
            "0",
        )
        assert node.command_line == "WMI: SELECT 1"

    def test_has_alerts_in_tree(self):
        node = StoryNode.from_dict(
            {"children": [{"nestedItems": [{"associatedAlerts": [{"alertDisplayName": "Bad"}]}]}]},
            "0",
        )
        assert node.has_alerts_in_tree()
        assert not node.associated_alerts
        assert node.children[0].nested_items[0].associated_alerts[0].display_name == "Bad"

    def test_has_details(self):
        assert StoryNode.from_dict({"details": [{"key": "a", "value": 1}]}, "0").has_details
        assert not StoryNode.from_dict({"entity": {"User": {}}}, "0").has_details


class TestStoryDocument:
    """Test document construction and traversal."""

    def test_from_dict(self, sample_document):
        assert sample_document.main_user.name == "alice"
        assert sample_document.device_name == "ws-alice.corp.contoso.com"
        assert [item.id for item in sample_document.items] == ["p1", "r1"]
        assert sample_document.error is None

    def test_pre_order_traversal(self, sample_document):
        ids = [node.id for node in sample_document.iter_nodes()]
        assert ids == ["p1", "f1", "f2", "s1", "a1", "node-0.3", "r1", "node-1.0"]
        assert sample_document.node_count == 8

    def test_find_node(self, sample_document):
        assert sample_document.find_node("node-1.0").title.main == "cmd.exe"
        assert sample_document.find_node("missing") is None

    def test_to_dict_is_a_deep_copy(self, sample_document, sample_story):
        copied = sample_document.to_dict()
        copied["items"][0]["title"]["main"] = "changed"
        assert sample_document.raw["items"][0]["title"]["main"] == "powershell.exe"
        assert copied["deviceId"] == sample_story["deviceId"]

    def test_node_ids_reused_for_derived_copies(self, sample_document, sample_story):
        sample_story["items"][0]["id"] = "renamed"
        derived = StoryDocument.from_dict(sample_story, sample_document.node_ids())
        assert derived.items[0].id == "p1"
        assert derived.node_ids() == sample_document.node_ids()

    def test_fallback_document(self):
        document = StoryDocument.from_dict({"error": "Failed", "items": []})
        assert document.error == "Failed"
        assert document.items == ()
