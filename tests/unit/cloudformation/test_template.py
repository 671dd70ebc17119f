import json
import os

import pytest

from stackpilot.cloudformation.exceptions import TemplateNotFound
from stackpilot.cloudformation.stack import stack_name_from_path
from stackpilot.cloudformation.template import Template

SIMPLE_TEMPLATE = """
Resources:
  Bucket:
    Type: AWS::S3::Bucket
    Properties:
      BucketName: "{{ context.bucket_name }}-{{ stage }}"
"""


class CountingSecrets:
    def __init__(self, values=None):
        self.values = values or {}
        self.calls = []

    def resolve(self, name):
        self.calls.append(name)
        return self.values.get(name)


class CountingAccountId:
    def __init__(self, account_id="000000000000"):
        self.account_id = account_id
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.account_id


@pytest.mark.parametrize(
    "path,stage,expected",
    [
        ("stacks/my_service.yml", "prod", "my-service-prod"),
        ("stacks/my_service.yml", None, "my-service"),
        ("stacks/network/", "staging", "network-staging"),
        ("web_app.template.json", None, "web-app.template"),
    ],
)
def test_stack_name_from_path(path, stage, expected):
    assert stack_name_from_path(path, stage) == expected


def test_stack_name_is_deterministic():
    assert stack_name_from_path("a/b_c.yml", "dev") == stack_name_from_path("a/b_c.yml", "dev")


def test_render_is_deterministic(create_stack_files):
    path = create_stack_files(
        template_yml=SIMPLE_TEMPLATE, context_yml="bucket_name: assets\n"
    )

    first = Template(path, stage="dev").body
    second = Template(path, stage="dev").body

    assert first == second
    document = json.loads(first)
    assert document["Resources"]["Bucket"]["Properties"]["BucketName"] == "assets-dev"


def test_render_produces_canonical_json(create_stack_files):
    path = create_stack_files(template_json='{"b": 1, "a": {"d": 2, "c": 3}}')

    body = Template(path).body

    assert body == '{\n  "a": {\n    "c": 3,\n    "d": 2\n  },\n  "b": 1\n}'


def test_template_size_counts_bytes(create_stack_files):
    path = create_stack_files(template_json='{"Description": "ä"}')

    template = Template(path)

    assert template.size == len(template.body.encode("utf-8"))


def test_stage_section_replaces_context(create_stack_files):
    path = create_stack_files(
        template_json="{}", context_json=json.dumps({"prod": {"a": 1}, "b": 2})
    )

    assert Template(path, stage="prod").context().context == {"a": 1}
    assert Template(path, stage="dev").context().context == {"prod": {"a": 1}, "b": 2}
    assert Template(path).context().context == {"prod": {"a": 1}, "b": 2}


def test_missing_context_is_empty(create_stack_files):
    path = create_stack_files(template_json='{"Description": "{{ context.missing }}"}')

    template = Template(path)

    assert template.context().context == {}
    assert template.context().context.missing is None


def test_nested_context_attribute_access(create_stack_files):
    path = create_stack_files(
        template_yml='Description: "{{ context.db.name }} {{ context.hosts[1].name }}"\n',
        context_yml="db:\n  name: main\nhosts:\n  - name: a\n  - name: b\n",
    )

    assert json.loads(Template(path).body) == {"Description": "main b"}


def test_template_not_found_in_empty_directory(create_stack_files):
    path = create_stack_files()

    with pytest.raises(TemplateNotFound) as e:
        Template(path).body

    assert path in str(e.value)


def test_template_not_found_for_missing_file(tmp_path):
    with pytest.raises(TemplateNotFound):
        Template(os.fspath(tmp_path / "missing.yml")).body


def test_template_file_with_sibling_files(tmp_path):
    (tmp_path / "network.yml").write_text('Description: "{{ context.name }}"\n')
    (tmp_path / "context.json").write_text('{"name": "net"}')

    template = Template(os.fspath(tmp_path / "network.yml"))

    assert json.loads(template.body) == {"Description": "net"}


def test_directory_ignores_unknown_extensions(create_stack_files):
    path = create_stack_files(template_txt="not a template", template_yaml="Description: ok\n")

    assert json.loads(Template(path).body) == {"Description": "ok"}


def test_yaml_short_form_tags(create_stack_files):
    path = create_stack_files(
        template_yml="""
Outputs:
  Arn:
    Value: !GetAtt Bucket.Arn
  Name:
    Value: !Ref Bucket
  Url:
    Value: !Sub "https://${Bucket}.example.com"
  Joined:
    Value: !Join [",", [a, b]]
"""
    )

    outputs = json.loads(Template(path).body)["Outputs"]

    assert outputs["Arn"]["Value"] == {"Fn::GetAtt": ["Bucket", "Arn"]}
    assert outputs["Name"]["Value"] == {"Ref": "Bucket"}
    assert outputs["Url"]["Value"] == {"Fn::Sub": "https://${Bucket}.example.com"}
    assert outputs["Joined"]["Value"] == {"Fn::Join": [",", ["a", "b"]]}


def test_yaml_dates_stay_strings(create_stack_files):
    path = create_stack_files(template_yml="AWSTemplateFormatVersion: 2010-09-09\n")

    assert json.loads(Template(path).body) == {"AWSTemplateFormatVersion": "2010-09-09"}


def test_secrets_are_only_resolved_when_referenced(create_stack_files):
    path = create_stack_files(template_json='{"Description": "static"}')
    secrets = CountingSecrets()
    account_id = CountingAccountId()

    Template(path, secrets=secrets, account_id=account_id).body

    assert secrets.calls == []
    assert account_id.calls == 0


def test_secrets_are_resolved_on_every_render(create_stack_files):
    path = create_stack_files(template_json='{"Description": "{{ ssm(\'/db/password\') }}"}')
    secrets = CountingSecrets({"/db/password": "s3cr3t"})
    template = Template(path, secrets=secrets)

    assert json.loads(template.body) == {"Description": "s3cr3t"}
    assert json.loads(template.body) == {"Description": "s3cr3t"}
    assert secrets.calls == ["/db/password", "/db/password"]


def test_account_id_and_stage_variables(create_stack_files):
    path = create_stack_files(
        template_json='{"Description": "{{ aws_account_id }}/{{ stage }}'
        '{% if stage == \'prod\' %}/live{% endif %}"}'
    )
    account_id = CountingAccountId("123456789012")

    body = Template(path, stage="prod", account_id=account_id).body

    assert json.loads(body) == {"Description": "123456789012/prod/live"}
    assert account_id.calls == 1


def test_parameters_are_rendered_with_template_variables(create_stack_files):
    path = create_stack_files(
        template_json="{}",
        parameters_yml="Environment: '{{ stage }}'\nKey: '{{ context.key }}'\n",
        context_yml="key: value\n",
    )

    assert Template(path, stage="dev").parameters() == {"Environment": "dev", "Key": "value"}


def test_parameters_missing_file(create_stack_files):
    path = create_stack_files(template_json="{}")

    assert Template(path).parameters() is None


def test_dynamic_references_are_rendered_unchanged(create_stack_files):
    reference = "{{resolve:secretsmanager:MySecret:SecretString:password}}"
    path = create_stack_files(
        template_json=json.dumps(
            {
                "Resources": {
                    "Database": {
                        "Type": "AWS::RDS::DBInstance",
                        "Properties": {
                            "DBName": "{{ context.name }}-{{ stage }}",
                            "MasterUserPassword": reference,
                        },
                    }
                }
            }
        ),
        context_json='{"name": "orders"}',
    )

    body = Template(path, stage="prod").body

    properties = json.loads(body)["Resources"]["Database"]["Properties"]
    assert properties["MasterUserPassword"] == reference
    assert properties["DBName"] == "orders-prod"
    assert f'"{reference}"' in body


def test_dynamic_references_in_yaml_and_parameters(create_stack_files):
    path = create_stack_files(
        template_yml='Description: "{{ resolve:ssm:/app/description:3 }}"\n',
        parameters_yml="Token: '{{resolve:ssm-secure:/app/token}}'\n",
    )
    template = Template(path)

    assert json.loads(template.body) == {"Description": "{{ resolve:ssm:/app/description:3 }}"}
    assert template.parameters() == {"Token": "{{resolve:ssm-secure:/app/token}}"}
