"""
Integration test: the HTTP surface end to end.

Report, match, claim, verify, hand over, and the trust side effects of
each step, plus the error mapping of the domain errors.
"""


class TestAppStartup:

    def test_root(self, client):
        assert client.get("/").json() == {"status": "ok"}

    def test_register_returns_token(self, client):
        response = client.post("/auth/register", json={"name": "Grace", "email": "Grace@Example.rw"})

        assert response.status_code == 200
        token = response.json()["access_token"]
        me = client.get("/trust/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["level"] == "NEW"

    def test_duplicate_registration(self, client):
        client.post("/auth/register", json={"name": "Grace", "email": "grace@example.rw"})

        assert client.post("/auth/register", json={"name": "Grace", "email": "grace@example.rw"}).status_code == 409

    def test_requires_token(self, client):
        assert client.get("/trust/me").status_code in (401, 403)


class TestReporting:

    def test_lost_report_includes_strength(self, client, auth, owner, lost_payload):
        response = client.post("/items/lost", json=lost_payload, headers=auth(owner))

        assert response.status_code == 200
        body = response.json()
        assert body["verification_strength"]["overall_strength"] in ("WEAK", "MODERATE", "STRONG")
        assert len(body["verification_strength"]["questions"]) == 3
        assert "answer_1" not in body["item"]

    def test_two_questions_rejected(self, client, auth, owner, lost_payload):
        lost_payload["security_questions"] = lost_payload["security_questions"][:2]

        response = client.post("/items/lost", json=lost_payload, headers=auth(owner))

        assert response.status_code == 400
        assert response.json() == {"detail": "Exactly 3 security questions are required"}

    def test_unknown_category_is_a_schema_error(self, client, auth, finder, found_payload):
        found_payload["category"] = "UMBRELLA"

        assert client.post("/items/found", json=found_payload, headers=auth(finder)).status_code == 422

    def test_daily_report_ceiling(self, client, auth, finder, found_payload):
        for _ in range(3):
            assert client.post("/items/found", json=found_payload, headers=auth(finder)).status_code == 200

        response = client.post("/items/found", json=found_payload, headers=auth(finder))

        assert response.status_code == 429

    def test_public_listing_is_redacted(self, client, auth, owner, finder, report):
        report(owner, finder)

        items = client.get("/items/lost").json()["items"]

        assert len(items) == 1
        assert "0788123456" not in items[0]["description"]
        assert items[0]["privacy_notice"]
        assert not any(key.startswith("answer") or key.startswith("question") for key in items[0])

    def test_owner_detail_is_plain(self, client, auth, owner, finder, report):
        lost_id, _ = report(owner, finder)

        item = client.get(f"/items/lost/{lost_id}", headers=auth(owner)).json()["item"]

        assert "0788123456" in item["description"]

    def test_strength_endpoint(self, client):
        response = client.post("/items/verification-strength", json={
            "questions": ["Is it black?", "Is it new?", "Is it a Samsung?"],
            "answers": ["yes", "no", "yes"],
            "category": "PHONE",
        })

        assert response.status_code == 200
        assert response.json()["overall_strength"] == "WEAK"

    def test_strength_endpoint_requires_three_pairs(self, client):
        response = client.post("/items/verification-strength", json={
            "questions": [],
            "answers": [],
            "category": "PHONE",
        })

        assert response.status_code == 400
        assert response.json() == {"detail": "Exactly 3 security questions and 3 answers are required"}

    def test_repeat_report_warns_about_duplicate(self, client, auth, finder, found_payload):
        first = client.post("/items/found", json=found_payload, headers=auth(finder)).json()
        second = client.post("/items/found", json=found_payload, headers=auth(finder)).json()

        assert first["duplicate_check"]["has_potential_duplicates"] is False
        assert second["duplicate_check"]["has_potential_duplicates"] is True
        assert second["duplicate_check"]["candidates"][0]["id"] == first["item"]["id"]
        # Advisory only, both reports are kept
        assert len(client.get("/items/found").json()["items"]) == 2

    def test_templates_endpoint(self, client):
        templates = client.get("/items/verification-templates/wallet").json()

        assert templates[0]["category"] == "WALLET"


class TestMatches:

    def test_owner_sees_ranked_candidates(self, client, auth, owner, finder, report):
        lost_id, found_id = report(owner, finder)

        matches = client.get(f"/matches/lost/{lost_id}", headers=auth(owner)).json()["matches"]

        assert len(matches) == 1
        assert matches[0]["item"]["id"] == found_id
        # category, district, window, samsung/black/phone
        assert matches[0]["score"] == 13
        assert matches[0]["explanation"][1] == "same district: Gasabo"

    def test_only_owner_or_admin(self, client, auth, owner, finder, stranger, admin, report):
        lost_id, _ = report(owner, finder)

        assert client.get(f"/matches/lost/{lost_id}", headers=auth(stranger)).status_code == 403
        assert client.get(f"/matches/lost/{lost_id}", headers=auth(admin)).status_code == 200

    def test_finder_side(self, client, auth, owner, finder, report):
        lost_id, found_id = report(owner, finder)

        matches = client.get(f"/matches/found/{found_id}", headers=auth(finder)).json()["matches"]

        assert [m["item"]["id"] for m in matches] == [lost_id]
        assert "0788123456" not in matches[0]["item"]["description"]


class TestClaimFlow:

    def test_full_return(self, client, auth, owner, finder, report):
        lost_id, found_id = report(owner, finder)

        created = client.post("/claims/", json={"lost_item_id": lost_id, "found_item_id": found_id}, headers=auth(owner))
        assert created.status_code == 200, created.text
        claim_id = created.json()["id"]
        assert created.json()["status"] == "PENDING"

        questions = client.get(f"/claims/{claim_id}/questions", headers=auth(owner)).json()
        assert questions["questions"][0] == "What is your lockscreen wallpaper?"

        wrong = client.post(f"/claims/{claim_id}/verify", json={"answers": ["a", "b", "c"]}, headers=auth(owner)).json()
        assert wrong["passed"] is False
        assert wrong["attempts_remaining"] == 2

        right = client.post(
            f"/claims/{claim_id}/verify",
            json={"answers": ["Sunset over Lake Kivu", "4821", "nope"]},
            headers=auth(owner),
        ).json()
        assert right["passed"] is True
        assert right["status"] == "VERIFIED"

        code = client.post(f"/claims/{claim_id}/otp", headers=auth(owner)).json()["code"]
        assert len(code) == 6

        refused = client.post(f"/claims/{claim_id}/confirm-handover", json={"code": code}, headers=auth(owner))
        assert refused.status_code == 403

        done = client.post(f"/claims/{claim_id}/confirm-handover", json={"code": code}, headers=auth(finder))
        assert done.status_code == 200
        assert done.json()["status"] == "RETURNED"

        assert client.get("/trust/me", headers=auth(finder)).json()["score"] == 3
        # -2 for the failed attempt, +2 for the recovery
        assert client.get("/trust/me", headers=auth(owner)).json()["score"] == 0

        again = client.post(f"/claims/{claim_id}/confirm-handover", json={"code": code}, headers=auth(finder))
        assert again.status_code == 409
        assert again.json() == {"detail": "Claim already resolved"}

    def test_outsider_gets_403_without_state(self, client, auth, owner, finder, stranger, report):
        lost_id, found_id = report(owner, finder)
        claim_id = client.post("/claims/", json={"lost_item_id": lost_id, "found_item_id": found_id}, headers=auth(owner)).json()["id"]

        response = client.get(f"/claims/{claim_id}", headers=auth(stranger))

        assert response.status_code == 403
        assert "PENDING" not in response.text

    def test_wrong_answer_count(self, client, auth, owner, finder, report):
        lost_id, found_id = report(owner, finder)
        claim_id = client.post("/claims/", json={"lost_item_id": lost_id, "found_item_id": found_id}, headers=auth(owner)).json()["id"]

        response = client.post(f"/claims/{claim_id}/verify", json={"answers": ["a"]}, headers=auth(owner))

        assert response.status_code == 400

    def test_handover_locations(self, client, auth, owner, finder, stranger, report):
        lost_id, found_id = report(owner, finder)
        claim_id = client.post("/claims/", json={"lost_item_id": lost_id, "found_item_id": found_id}, headers=auth(owner)).json()["id"]

        assert client.get(f"/claims/{claim_id}/handover-locations", headers=auth(owner)).status_code == 409

        client.post(f"/claims/{claim_id}/verify", json={"answers": ["sunset over lake kivu", "4821", "irembo"]}, headers=auth(owner))

        response = client.get(f"/claims/{claim_id}/handover-locations", headers=auth(finder))
        assert response.status_code == 200
        points = response.json()
        assert len(points) == 5
        assert points[0]["name"] == "Remera Sector Office"
        assert points[0]["type"] == "SECTOR_OFFICE"

        assert client.get(f"/claims/{claim_id}/handover-locations", headers=auth(stranger)).status_code == 403

    def test_duplicate_claim(self, client, auth, owner, finder, report):
        lost_id, found_id = report(owner, finder)
        body = {"lost_item_id": lost_id, "found_item_id": found_id}
        client.post("/claims/", json=body, headers=auth(owner))

        assert client.post("/claims/", json=body, headers=auth(owner)).status_code == 409

    def test_cooldown_sets_retry_after(self, client, auth, owner, finder, report, set_score):
        first = report(owner, finder)
        second = report(owner, finder)
        claim_id = client.post(
            "/claims/", json={"lost_item_id": first[0], "found_item_id": first[1]}, headers=auth(owner)
        ).json()["id"]
        client.post(f"/claims/{claim_id}/verify", json={"answers": ["a", "b", "c"]}, headers=auth(owner))
        # keep the open-claim ceiling out of the way
        set_score(owner, 10)

        response = client.post(
            "/claims/", json={"lost_item_id": second[0], "found_item_id": second[1]}, headers=auth(owner)
        )

        assert response.status_code == 429
        retry_after = int(response.headers["Retry-After"])
        assert 3500 < retry_after <= 3600
        assert response.json()["retry_after_seconds"] == retry_after

    def test_my_claims_and_notifications(self, client, auth, owner, finder, report):
        lost_id, found_id = report(owner, finder)
        client.post("/claims/", json={"lost_item_id": lost_id, "found_item_id": found_id}, headers=auth(owner))

        mine = client.get("/claims/mine", headers=auth(finder)).json()["claims"]
        assert [c["role"] for c in mine] == ["finder"]

        assert client.get("/notifications/count", headers=auth(finder)).json() == {"count": 1}
        notes = client.get("/notifications/", headers=auth(finder)).json()["notifications"]
        assert notes[0]["type"] == "claim_created"


class TestTrustAndModeration:

    def test_levels_table(self, client):
        levels = client.get("/trust/levels").json()["levels"]

        assert [lvl["level"] for lvl in levels] == ["SUSPENDED", "RESTRICTED", "NEW", "ESTABLISHED", "TRUSTED"]
        assert levels[-1]["claim_limit"] == 7

    def test_admin_only(self, client, auth, owner):
        assert client.get("/admin/stats", headers=auth(owner)).status_code == 403
        assert client.get(f"/trust/users/{owner.public_id}", headers=auth(owner)).status_code == 403

    def test_contact_verification_is_credited_once(self, client, auth, owner, admin):
        url = f"/admin/users/{owner.public_id}/verify-contact"

        assert client.post(url, json={"channel": "phone"}, headers=auth(admin)).json()["credited"] is True
        assert client.post(url, json={"channel": "phone"}, headers=auth(admin)).json()["credited"] is False
        assert client.get("/trust/me", headers=auth(owner)).json()["score"] == 2

    def test_scam_report_confirmed(self, client, auth, owner, finder, admin):
        filed = client.post(
            "/trust/scam-reports",
            json={"reported_user_id": finder.public_id, "reason": "Asked me to pay before meeting"},
            headers=auth(owner),
        )
        assert filed.status_code == 200
        report_id = filed.json()["report_id"]

        listed = client.get("/admin/scam-reports?status=OPEN", headers=auth(admin)).json()
        assert [r["id"] for r in listed] == [report_id]

        resolved = client.post(f"/admin/scam-reports/{report_id}/resolve", json={"action": "confirm"}, headers=auth(admin))
        assert resolved.json()["status"] == "CONFIRMED"

        assert client.get("/trust/me", headers=auth(finder)).json()["level"] == "SUSPENDED"
        assert client.get("/trust/me", headers=auth(owner)).json()["score"] == 1

        twice = client.post(f"/admin/scam-reports/{report_id}/resolve", json={"action": "dismiss"}, headers=auth(admin))
        assert twice.status_code == 409

    def test_scam_report_dismissed(self, client, auth, owner, finder, admin):
        report_id = client.post(
            "/trust/scam-reports",
            json={"reported_user_id": finder.public_id, "reason": "I think this person is lying"},
            headers=auth(owner),
        ).json()["report_id"]

        client.post(f"/admin/scam-reports/{report_id}/resolve", json={"action": "dismiss"}, headers=auth(admin))

        assert client.get("/trust/me", headers=auth(owner)).json()["score"] == -3
        assert client.get("/trust/me", headers=auth(finder)).json()["score"] == 0

    def test_cannot_report_self(self, client, auth, owner):
        response = client.post(
            "/trust/scam-reports",
            json={"reported_user_id": owner.public_id, "reason": "Testing the reporting flow"},
            headers=auth(owner),
        )

        assert response.status_code == 400

    def test_admin_trust_view(self, client, auth, owner, admin):
        body = client.get(f"/trust/users/{owner.public_id}", headers=auth(admin)).json()

        assert body["trust"]["score"] == 0
        assert body["fraud_risk"]["level"] in ("LOW", "MEDIUM", "HIGH", "CRITICAL")
        assert body["history"] == []

    def test_recalculate(self, client, auth, owner, admin, set_score):
        client.post(f"/admin/users/{owner.public_id}/verify-contact", json={"channel": "email"}, headers=auth(admin))
        set_score(owner, 40)

        response = client.post(f"/admin/users/{owner.public_id}/recalculate-trust", headers=auth(admin))

        assert response.json() == {"ok": True, "score": 1}

    def test_stats(self, client, auth, owner, finder, admin, report):
        lost_id, found_id = report(owner, finder)
        client.post("/claims/", json={"lost_item_id": lost_id, "found_item_id": found_id}, headers=auth(owner))

        stats = client.get("/admin/stats", headers=auth(admin)).json()

        assert stats["lost_items"] == 1
        assert stats["claims_by_status"]["PENDING"] == 1
