# -*- coding: utf-8 -*-
# -*- mode: python -*-
"""Add specimens to a collection from a JSON array of records.

Each record is POSTed to the specimens endpoint of the API, for example
https://example.org/spiders/api/specimens/. Records need at least `name` and
`species`.
"""
import getpass
import json

import requests as rq

if __name__ == "__main__":
    import argparse

    p = argparse.ArgumentParser()
    p.add_argument("endpoint", help="URL to POST records to")
    p.add_argument("records", help="file with records as JSON array")
    p.add_argument("-u", "--user", required=True, help="account that will own the specimens")

    args = p.parse_args()
    password = getpass.getpass(f"password for {args.user}: ")

    with open(args.records, "r") as fp:
        data = json.load(fp)
    session = rq.Session()
    session.auth = (args.user, password)
    failed = 0
    for record in data:
        r = session.post(args.endpoint, json=record)
        if r.status_code == rq.codes.created:
            print(f"{record['name']}: {r.json()['uuid']}")
        else:
            failed += 1
            print(f"{record.get('name')}: error {r.status_code} {r.text}")
    print(f"added {len(data) - failed} of {len(data)} records")
