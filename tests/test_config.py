import argparse
import json
from datetime import datetime

import pytest

from failed_asset_report.config import (
    ENVIRONMENT_DOMAINS, build_license_context, get_output_filename, load_credentials,
    parse_arguments, resolve_domain, uuid_string
)
from failed_asset_report.errors import ConfigError

from conftest import ACCOUNT_A1, ACCOUNT_A2, LICENSE_ID


def no_prompt(label):
    raise AssertionError(f"unexpected prompt: {label}")


def test_parse_arguments_defaults():
    args = parse_arguments(['-e', 'prod', '-l', LICENSE_ID.upper()])

    assert args.environment == 'prod'
    assert args.license_id == LICENSE_ID
    assert args.account_ids is None
    assert args.benchmark_id == 'CSBP'
    assert args.max_attempts == 1
    assert args.output_dir == '.'
    assert args.excel is False


def test_parse_arguments_accounts_and_benchmark():
    args = parse_arguments(['-e', 'qa', '-l', LICENSE_ID, '-a', ACCOUNT_A1, ACCOUNT_A2, '-b', 'HIPAA'])

    assert args.account_ids == [ACCOUNT_A1, ACCOUNT_A2]
    assert args.benchmark_id == 'HIPAA'


def test_parse_arguments_rejects_bad_uuid_and_environment():
    with pytest.raises(SystemExit):
        parse_arguments(['-e', 'prod', '-l', 'not-a-uuid'])
    with pytest.raises(SystemExit):
        parse_arguments(['-e', 'staging', '-l', LICENSE_ID])


def test_uuid_string():
    assert uuid_string(ACCOUNT_A1.upper()) == ACCOUNT_A1
    with pytest.raises(argparse.ArgumentTypeError):
        uuid_string('1234')


def test_environment_table_is_fixed():
    assert set(ENVIRONMENT_DOMAINS) == {'dev', 'qa', 'trial', 'prod', 'prod1'}
    with pytest.raises(TypeError):
        ENVIRONMENT_DOMAINS['dev'] = 'elsewhere'


def test_resolve_domain_with_custom_table():
    assert resolve_domain('qa', {'qa': 'qa.example'}) == 'qa.example'
    with pytest.raises(ConfigError):
        resolve_domain('prod', {'qa': 'qa.example'})


def test_build_license_context(cli_args):
    context = build_license_context(cli_args)

    assert context.license_id == LICENSE_ID
    assert context.domain == ENVIRONMENT_DOMAINS['qa']
    assert context.base_url == f"https://{ENVIRONMENT_DOMAINS['qa']}"


def test_credentials_from_key_file(cli_args, tmp_path):
    key_file = tmp_path / 'key.json'
    key_file.write_text(json.dumps({'applicationId': 'app', 'secret': 'sec', 'subscriptionKey': 'sub'}))
    cli_args.api_key_file = str(key_file)

    credentials = load_credentials(cli_args, environ={}, prompt=no_prompt)

    assert (credentials.application_id, credentials.secret, credentials.subscription_key) == ('app', 'sec', 'sub')


def test_credentials_from_environment(cli_args):
    environ = {
        'CSPM_APPLICATION_ID': 'env-app',
        'CSPM_APPLICATION_SECRET': 'env-sec',
        'CSPM_SUBSCRIPTION_KEY': 'env-sub',
    }

    credentials = load_credentials(cli_args, environ=environ, prompt=no_prompt)

    assert credentials.application_id == 'env-app'
    assert credentials.secret == 'env-sec'


def test_cli_application_id_and_prompted_secrets(cli_args):
    cli_args.application_id = 'cli-app'
    answers = {'Application secret: ': 'typed-sec', 'API subscription key: ': 'typed-sub'}

    credentials = load_credentials(cli_args, environ={}, prompt=answers.__getitem__)

    assert credentials.application_id == 'cli-app'
    assert credentials.subscription_key == 'typed-sub'


def test_missing_application_id(cli_args):
    with pytest.raises(ConfigError):
        load_credentials(cli_args, environ={}, prompt=no_prompt)


def test_empty_prompted_secret(cli_args):
    cli_args.application_id = 'cli-app'
    with pytest.raises(ConfigError):
        load_credentials(cli_args, environ={}, prompt=lambda label: '')


def test_bad_key_file(cli_args, tmp_path):
    cli_args.api_key_file = str(tmp_path / 'missing.json')
    with pytest.raises(ConfigError, match='not found'):
        load_credentials(cli_args, environ={}, prompt=no_prompt)

    broken = tmp_path / 'broken.json'
    broken.write_text('{not json')
    cli_args.api_key_file = str(broken)
    with pytest.raises(ConfigError, match='Invalid JSON'):
        load_credentials(cli_args, environ={}, prompt=no_prompt)


def test_output_filename():
    assert get_output_filename(datetime(2026, 10, 18, 9, 5, 7)) == 'failed_asset-20261018-090507.csv'


def test_timeout_accepts_zero_and_rejects_negative():
    assert parse_arguments(['-e', 'qa', '-l', LICENSE_ID, '--timeout', '0']).timeout == 0
    with pytest.raises(SystemExit):
        parse_arguments(['-e', 'qa', '-l', LICENSE_ID, '--timeout', '-5'])


def test_cli_application_id_wins_over_key_file(cli_args, tmp_path):
    key_file = tmp_path / 'key.json'
    key_file.write_text(json.dumps({'applicationId': 'file-app', 'secret': 'sec', 'subscriptionKey': 'sub'}))
    cli_args.api_key_file = str(key_file)
    cli_args.application_id = 'cli-app'

    credentials = load_credentials(cli_args, environ={'CSPM_APPLICATION_ID': 'env-app'}, prompt=no_prompt)

    assert credentials.application_id == 'cli-app'
    assert credentials.secret == 'sec'
