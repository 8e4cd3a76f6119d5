"""
Wrench Distribution Demo
========================
Loads a contact scene and distributes one desired wrench among its contacts.

Run: python demo_wrench_distribution.py --force 0 0 600 --moment 0 10 0
"""

import argparse
import numpy as np

from forcecoll import DistributionLogger, Wrench, WrenchDistribution, load_scene

DEFAULT_SCENE = "configs/biped_stance.yaml"


def main():
    """Run one distribution cycle and print the contact breakdown."""
    parser = argparse.ArgumentParser(description="Distribute a desired wrench among contacts")
    parser.add_argument("--scene", default=DEFAULT_SCENE, help="Scene file (YAML or JSON)")
    parser.add_argument("--force", type=float, nargs=3, default=[0.0, 0.0, 600.0],
                        help="Desired force [N]")
    parser.add_argument("--moment", type=float, nargs=3, default=[0.0, 0.0, 0.0],
                        help="Desired moment about the moment origin [Nm]")
    parser.add_argument("--moment-origin", type=float, nargs=3, default=[0.0, 0.0, 0.0],
                        help="Point about which moments are taken [m]")
    parser.add_argument("--log", default=None, help="Optional JSONL output path")
    args = parser.parse_args()

    print(f"[DEMO] Loading scene: {args.scene}")
    contacts, config = load_scene(args.scene)
    contact_list = list(contacts.values())
    for key, contact in contacts.items():
        print(f"[DEMO]   {key}: {contact.type} '{contact.name}' ({contact.ridge_num} ridges)")

    wrench_dist = WrenchDistribution(contact_list, config)
    desired = Wrench(moment=args.moment, force=args.force)
    result = wrench_dist.run(desired, np.array(args.moment_origin))

    np.set_printoptions(precision=4, suppress=True)
    print(f"[DEMO] State: {wrench_dist.state}")
    if wrench_dist.last_solve_info is not None:
        info = wrench_dist.last_solve_info
        print(f"[DEMO] Solver: {info.solver} status={info.status} "
              f"iters={info.iters} time={info.solve_time_ms:.2f} ms")
    print(f"[DEMO] Desired: moment={desired.moment} force={desired.force}")
    print(f"[DEMO] Result:  moment={result.moment} force={result.force}")

    wrench_list = wrench_dist.calc_wrench_list(np.array(args.moment_origin))
    local_wrench_list = wrench_dist.calc_local_wrench_list()
    for key, wrench, local_wrench in zip(contacts.keys(), wrench_list, local_wrench_list):
        print(f"[DEMO]   {key}: force={wrench.force} moment={wrench.moment} "
              f"local_force={local_wrench.force}")

    if args.log:
        with DistributionLogger(args.log) as logger:
            logger.log_distribution(0, wrench_dist)
        print(f"[DEMO] Logged to: {args.log}")


if __name__ == "__main__":
    main()
