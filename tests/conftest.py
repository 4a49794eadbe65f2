"""Pytest configuration and fixtures for tsgen tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture(autouse=True)
def tsgen_home(temp_dir: Path, monkeypatch) -> Path:
    """Point config and backups at a throwaway home for every test."""
    home = temp_dir / "home"
    config_file = home / "config.toml"

    # config_manager imports the paths at module load, so patch both
    monkeypatch.setattr("tsgen_cli.config.BASE_DIR", home)
    monkeypatch.setattr("tsgen_cli.config.CONFIG_FILE", config_file)
    monkeypatch.setattr("tsgen_cli.config_manager.BASE_DIR", home)
    monkeypatch.setattr("tsgen_cli.config_manager.CONFIG_FILE", config_file)
    return home


@pytest.fixture
def sample_project_path() -> Path:
    """Get path to sample test project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


@pytest.fixture
def sample_typescript_code() -> str:
    """Sample TypeScript module for testing the parser."""
    return '''import { Injectable } from './di';
import type { User } from './types';
import * as path from 'path';

/** Looks users up by id. */
export class UserService extends BaseService implements Service {
  private readonly cache: Map<string, User> = new Map();
  static instances = 0;

  constructor(private repo: Repository) {
    super();
  }

  async find(id: string): Promise<User> {
    return this.repo.get(id);
  }
}

export interface Service extends Disposable {
  name?: string;
  start(port: number): void;
}

export type UserId = string | number;

export enum Role {
  Admin,
  Guest = 'guest',
}

export function greet(name: string, excited: boolean): string {
  return excited ? `Hello ${name}!` : `Hello ${name}`;
}

export const DEFAULT_ROLE: Role = Role.Guest, RETRIES = 3;

function helper(): void {}
'''


@pytest.fixture
def sample_class_code() -> str:
    """Small class used by transform tests."""
    return '''class Counter {
  count = 0;

  increment(): void {
    this.count++;
  }
}
'''
