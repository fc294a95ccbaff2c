import os
import tempfile

from protoc_eip712.models import FieldDef
from protoc_eip712.parser.proto_parser import parse_proto_file, parse_proto_text, strip_comments


def _write_temp_proto(content: str) -> str:
    fd, path = tempfile.mkstemp(suffix=".proto")
    os.write(fd, content.encode())
    os.close(fd)
    return path


class TestSimpleMessage:
    def test_single_message_with_primitives(self):
        proto = """\
syntax = "proto3";

package ault.license.v1;

message LicenseInfo {
    uint64 license_id = 1;
    string owner = 2;
    bool is_active = 3;
}
"""
        path = _write_temp_proto(proto)
        try:
            parsed = parse_proto_file(path)
            assert parsed.package == "ault.license.v1"
            assert parsed.source_file == path
            assert len(parsed.messages) == 1
            msg = parsed.messages[0]
            assert msg.name == "LicenseInfo"
            assert msg.full_name == "ault.license.v1.LicenseInfo"
            assert msg.source_file == path
            assert msg.fields == (
                FieldDef("license_id", "uint64"),
                FieldDef("owner", "string"),
                FieldDef("is_active", "bool"),
            )
        finally:
            os.unlink(path)

    def test_multiple_messages_keep_source_order(self):
        proto = """\
package demo;

message Foo {
    int32 id = 1;
}

message Bar {
    string name = 1;
    double value = 2;
}
"""
        parsed = parse_proto_text(proto)
        assert [m.name for m in parsed.messages] == ["Foo", "Bar"]
        assert len(parsed.messages[1].fields) == 2

    def test_empty_message(self):
        parsed = parse_proto_text("package demo;\nmessage MsgDelegateResponse {}\n")
        assert parsed.messages[0].name == "MsgDelegateResponse"
        assert parsed.messages[0].fields == ()


class TestFieldSyntax:
    def test_repeated_field(self):
        proto = """\
package demo;

message Container {
    repeated string tags = 1;
    repeated uint64 license_ids = 2;
}
"""
        fields = parse_proto_text(proto).messages[0].fields
        assert fields[0] == FieldDef("tags", "string", is_repeated=True)
        assert fields[1] == FieldDef("license_ids", "uint64", is_repeated=True)

    def test_optional_marker_is_ignored(self):
        proto = """\
package demo;

message Filter {
    optional string owner = 1;
}
"""
        fields = parse_proto_text(proto).messages[0].fields
        assert fields == (FieldDef("owner", "string"),)

    def test_dotted_and_absolute_type_references(self):
        proto = """\
package demo;

message Order {
    cosmos.base.v1beta1.Coin price = 1;
    .google.protobuf.Duration ttl = 2;
}
"""
        fields = parse_proto_text(proto).messages[0].fields
        assert fields[0].type_name == "cosmos.base.v1beta1.Coin"
        assert fields[1].type_name == ".google.protobuf.Duration"

    def test_field_options_do_not_hide_the_field(self):
        proto = """\
package demo;

message MsgSend {
    string amount = 1 [(gogoproto.nullable) = false];
}
"""
        fields = parse_proto_text(proto).messages[0].fields
        assert fields == (FieldDef("amount", "string"),)

    def test_malformed_lines_are_ignored(self):
        proto = """\
package demo;

message Broken {
    string = 1;
    option (cosmos.msg.v1.signer) = "owner";
    reserved 4, 5;
    map<string, string> labels = 6;
    string ok = 2;
}
"""
        fields = parse_proto_text(proto).messages[0].fields
        assert fields == (FieldDef("ok", "string"),)


class TestNestedBlocks:
    def test_nested_message_fields_are_not_parent_fields(self):
        proto = """\
package demo;

message Outer {
    string name = 1;
    message Inner {
        int32 value = 1;
    }
    Inner detail = 2;
}
"""
        parsed = parse_proto_text(proto)
        outer = parsed.messages[0]
        assert [f.name for f in outer.fields] == ["name", "detail"]
        assert outer.fields[1].type_name == "Inner"

    def test_enum_and_oneof_blocks_are_skipped(self):
        proto = """\
package demo;

message Order {
    enum Side {
        SIDE_UNSPECIFIED = 0;
        SIDE_BUY = 1;
    }
    oneof payload {
        string memo = 3;
        bytes blob = 4;
    }
    string market = 1;
}
"""
        fields = parse_proto_text(proto).messages[0].fields
        assert fields == (FieldDef("market", "string"),)

    def test_nested_block_does_not_register_a_separate_message(self):
        proto = """\
package demo;

message Outer {
    message Inner {
        int32 value = 1;
    }
    Inner detail = 1;
}
"""
        parsed = parse_proto_text(proto)
        assert [m.name for m in parsed.messages] == ["Outer"]


class TestComments:
    def test_strip_comments(self):
        text = "a /* block { */ b // line }\nc"
        assert strip_comments(text) == "a  b \nc"

    def test_braces_in_comments_do_not_break_depth(self):
        proto = """\
package demo;

/* message Ghost { string x = 1; } */
message Real {
    // a brace { that is never closed
    string owner = 1; // trailing }
    /* multi
       line } comment */
    string operator = 2;
}
"""
        parsed = parse_proto_text(proto)
        assert [m.name for m in parsed.messages] == ["Real"]
        assert [f.name for f in parsed.messages[0].fields] == ["owner", "operator"]

    def test_commented_out_field_is_not_parsed(self):
        proto = """\
package demo;

message Real {
    // string legacy = 1;
    string owner = 2;
}
"""
        fields = parse_proto_text(proto).messages[0].fields
        assert [f.name for f in fields] == ["owner"]


class TestPackageAndAnnotations:
    def test_file_without_package_is_skipped(self):
        assert parse_proto_text("message Foo { string a = 1; }") is None

    def test_amino_name_annotation(self):
        proto = """\
package ault.license.v1;

message MsgDelegate {
    option (amino.name) = "license/MsgDelegateLicense";
    string owner = 1;
}

message MsgPlain {
    string owner = 1;
}
"""
        messages = parse_proto_text(proto).messages
        assert messages[0].amino_name == "license/MsgDelegateLicense"
        assert messages[1].amino_name is None


class TestRpcDeclarations:
    def test_request_types_in_source_order(self):
        proto = """\
package ault.license.v1;

service Msg {
    rpc Delegate(MsgDelegate) returns (MsgDelegateResponse);
    rpc Mint ( .ault.license.v1.MsgMint ) returns ( MsgMintResponse ) {}
    rpc Query(QueryLicenseRequest) returns (QueryLicenseResponse);
}
"""
        parsed = parse_proto_text(proto)
        assert parsed.rpc_request_types == (
            "MsgDelegate",
            ".ault.license.v1.MsgMint",
            "QueryLicenseRequest",
        )

    def test_commented_rpc_is_ignored(self):
        proto = """\
package demo;

service Msg {
    // rpc Old(MsgOld) returns (MsgOldResponse);
}
"""
        assert parse_proto_text(proto).rpc_request_types == ()
