"""Durable key/value storage in memory or one file per key."""